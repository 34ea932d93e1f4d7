"""Create the kv_store table for the SQL backend."""
import asyncio

from orderflow.config import settings
from orderflow.database import init_db


async def init():
    print(f"Creating tables on {settings.DATABASE_URL}...")
    await init_db()
    print("Database tables created successfully!")


if __name__ == "__main__":
    asyncio.run(init())
