"""Create all DocuMind tables on the configured DATABASE_URL."""
import asyncio
import sys
sys.path.insert(0, ".")

from app.core.database import Base, close_db, init_db
from app.models import models  # noqa: F401  registers tables on Base.metadata


async def create_tables():
    print(f"📦 Registered tables: {len(Base.metadata.tables)}")
    for table in Base.metadata.tables:
        print(f"   - {table}")

    await init_db()
    await close_db()

    print("\n✅ All tables created")


if __name__ == "__main__":
    asyncio.run(create_tables())
