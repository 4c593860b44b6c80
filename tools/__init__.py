"""Prize Wheel — operator tooling and random sources."""
