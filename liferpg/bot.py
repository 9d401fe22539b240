import asyncio
import logging
import pathlib

import discord
from discord.ext import commands

from liferpg.database.db_manager import DBManager
from liferpg.database.document_store import PostgresDocumentStore
from liferpg.database.local_cache import LocalCache
from liferpg.services.game_service import GameService
from liferpg.services.narrator import build_narrator
from liferpg.utils.env import load_env, require_env

logger = logging.getLogger(__name__)


def get_intents() -> discord.Intents:
    intents = discord.Intents.default()
    intents.members = True
    return intents


class LifeRpgBot(commands.Bot):
    def __init__(self, game: GameService | None = None):
        super().__init__(command_prefix='/', intents=get_intents())
        self.game = game or GameService(
            store=PostgresDocumentStore(),
            cache=LocalCache(),
            narrator=build_narrator(),
        )

    async def setup_hook(self):
        cogs_path = pathlib.Path(__file__).parent / 'cogs'
        for file in cogs_path.glob('*_cog.py'):
            module = f'liferpg.cogs.{file.stem}'
            try:
                await self.load_extension(module)
                logger.info(f'Loaded {module}')
            except Exception:
                logger.error(f'Failed to load {module}', exc_info=True)

    async def on_ready(self):
        guild_id = require_env('GUILD_ID')
        guild = discord.Object(id=int(guild_id))
        self.tree.copy_global_to(guild=guild)
        await self.tree.sync(guild=guild)
        logger.info(f'Bot ready! Synced commands to guild {guild_id}')

    async def on_resumed(self):
        # Gateway connection is back: push any saves that failed while offline
        synced = await self.game.resync_pending()
        logger.info(f'Session resumed; {synced} pending save(s) pushed')

    async def close(self):
        await self.game.shutdown()
        await super().close()


async def main():
    load_env()
    token = require_env('DISCORD_TOKEN')

    # Initialize the Postgres connection pool once for the process
    DBManager.init_pool()

    bot = LifeRpgBot()
    try:
        async with bot:
            await bot.start(token)
    except Exception:
        logger.error('Bot failed due to an exception', exc_info=True)
    finally:
        # Ensure DB connections are cleaned up on shutdown
        DBManager.close_pool()


if __name__ == '__main__':
    asyncio.run(main())
