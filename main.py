import asyncio
import logging

from liferpg.bot import main as run
from liferpg.database import init_schema
from liferpg.database.db_manager import DBManager
from liferpg.utils.env import load_env
from liferpg.utils.logs import setup_logging

if __name__ == '__main__':
    setup_logging(logging.INFO)
    load_env()

    with DBManager() as db:
        # Make sure the document table exists before serving commands
        init_schema.run(db)

    # Start the bot
    asyncio.run(run())
