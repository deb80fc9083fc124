"""
Run Alembic migrations against DATABASE_URL.
"""
from alembic.config import Config
from alembic import command

from drugclaim.api.core.config import settings

# Create Alembic config
alembic_cfg = Config("alembic.ini")
alembic_cfg.set_main_option("sqlalchemy.url", settings.sync_database_url)

# Run migrations
print(f"Running migrations with URL: {settings.sync_database_url.split('@')[-1]}")
command.upgrade(alembic_cfg, "head")
print("✅ Migrations completed successfully")
