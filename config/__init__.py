"""Prize Wheel — settings and configuration schema."""
