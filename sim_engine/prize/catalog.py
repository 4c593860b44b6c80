"""Prize catalog, base probabilities and pity tuning for the party wheel.

Positions are significant: the base probability table and the rare indexes
refer to prizes by their index in PRIZES. The table is tuned so the expected
payout is ~1.95 € per spin against a 2 € spin price.
"""

PRIZES = [
    {"id": 0, "name": "Moët", "cost": 150, "icon": "🍾", "color": "#FFD700"},
    {"id": 1, "name": "Bottiglia Premium", "cost": 100, "icon": "🍷", "color": "#8B0000"},
    {"id": 2, "name": "Raddoppia l'ordine", "cost": 10, "icon": "2️⃣", "color": "#4B0082"},
    {"id": 3, "name": "Vino", "cost": 60, "icon": "🍷", "color": "#DC143C"},
    {"id": 4, "name": "Drink a scelta", "cost": 10, "icon": "🍹", "color": "#1E90FF"},
    {"id": 5, "name": "Spritz", "cost": 10, "icon": "🥂", "color": "#FF8C00"},
    {"id": 6, "name": "Birra", "cost": 5, "icon": "🍺", "color": "#FFD700"},
    {"id": 7, "name": "Miss", "cost": 0, "icon": "❌", "color": "#808080"},
]

# Percentage points, must total 100
BASE_PROBABILITIES = (0.2, 0.4, 1.2, 0.8, 1.5, 2.5, 5.0, 88.4)

PITY_DEFAULTS = {
    "enabled": True,
    "rare_indexes": (0, 1, 2),     # Moët, Bottiglia Premium, Raddoppia
    "threshold_spins": 30,
    "multiplier": 2.0,
    "reset_on_win": True,
}

HISTORY_SIZE = 10
SPIN_PRICE = 2.0
