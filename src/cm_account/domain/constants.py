"""System accounts seeded by alembic/versions/009_seed_system_accounts.py."""

# Receives the platform commission of every purchase
PLATFORM_FEE_USER_ID = "PLATFORM_FEE"
