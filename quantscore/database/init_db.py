import asyncio

from quantscore.config import config
from quantscore.database.models import Base
from quantscore.database.postgres import PostgresResultStore
from quantscore.logging import logger, setup_logging


async def init_models(store: PostgresResultStore = None):
    store = store or PostgresResultStore(config)
    await store.connect()  # This creates the engine

    logger.info("Creating tables...")
    async with store._engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Tables created successfully.")

    await store.disconnect()


if __name__ == "__main__":
    setup_logging(config)
    asyncio.run(init_models())
