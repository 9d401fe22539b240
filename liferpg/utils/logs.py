import logging
import sys


def setup_logging(level: int = logging.INFO):
    '''Configure the root logger once for the bot and its services.'''
    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # discord.py is chatty at INFO about gateway heartbeats
    logging.getLogger('discord.gateway').setLevel(max(level, logging.WARNING))
