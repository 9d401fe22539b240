import logging

from discord import Interaction

from liferpg.services.game_service import GameSession

logger = logging.getLogger(__name__)


async def send_narration(interaction: Interaction, session: GameSession) -> None:
    '''Follow up an already-answered interaction with the narrator's line.'''
    task = session.narration
    if task is None:
        return
    try:
        text = await task
    except Exception:
        logger.warning('Narration task failed', exc_info=True)
        return
    await interaction.followup.send(f'📜 _{text}_')
