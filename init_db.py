"""Initialize database tables and the first administrator"""
import asyncio
from oneonone.database import engine, Base
from oneonone.models import *  # noqa: F401,F403 - Import all models to register them
from oneonone.main import seed_admin


async def init():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print("Database tables created successfully.")
    await seed_admin()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(init())
