"""
Initialize database schema and seed the default resource catalogue.
Creates all tables from SQLAlchemy models.
"""
import sys

from drugclaim.api.core.config import settings
from drugclaim.api.db.base import Base
from drugclaim.api.db.session import SessionLocal, engine
from drugclaim.api.services.resource_registry import seed_default_resources

# Import all models to ensure they're registered
from drugclaim.api.models.resource import Resource  # noqa: F401
from drugclaim.api.models.lease import Lease  # noqa: F401
from drugclaim.api.models.assignment import Assignment  # noqa: F401
from drugclaim.api.models.audit_log import AuditLog  # noqa: F401

print("Creating all database tables...")
print(f"Database URL: {engine.url}")

try:
    # Create all tables
    Base.metadata.create_all(bind=engine)
    print("✅ All tables created successfully!")

    # List created tables
    print("\nCreated tables:")
    for table in Base.metadata.sorted_tables:
        print(f"  - {table.name}")

    db = SessionLocal()
    try:
        inserted = seed_default_resources(db, settings.DEFAULT_RESOURCE_COUNT)
    finally:
        db.close()
    print(f"\n✅ Seeded {inserted} resource(s)")

except Exception as e:
    print(f"❌ Error initializing database: {e}")
    sys.exit(1)
