import logging

from discord import Interaction, app_commands
from discord.ext import commands

from liferpg.models.activity import get_activity
from liferpg.services.progression import QuestClaimError
from liferpg.utils.embeds import claim_result_embed, quest_board_embed

logger = logging.getLogger(__name__)


class QuestCog(commands.Cog):
    '''Daily and weekly quest board.'''

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    async def claimable_autocomplete(self, interaction: Interaction, current: str):
        session = self.bot.game.get(interaction.user.id)
        if session is None:
            return []
        choices = []
        for quest in session.state.quests:
            if quest.is_claimed or not quest.is_complete:
                continue
            activity = get_activity(quest.activity_id)
            label = f'{quest.type.value.title()}: {activity.label if activity else quest.activity_id}'
            if current.lower() in label.lower():
                choices.append(app_commands.Choice(name=label, value=quest.id))
        return choices[:25]

    @app_commands.command(name='quests', description='Show your daily and weekly quests')
    async def quests(self, interaction: Interaction):
        session = await self.bot.game.open_session(interaction.user.id)
        if session is None:
            await interaction.response.send_message(
                '⚠️ Create your character first with `/register`.', ephemeral=True
            )
            return
        await interaction.response.send_message(
            embed=quest_board_embed(session.state), ephemeral=True
        )

    @app_commands.command(name='claim', description='Claim the reward of a completed quest')
    @app_commands.describe(quest='A completed quest')
    @app_commands.autocomplete(quest=claimable_autocomplete)
    async def claim(self, interaction: Interaction, quest: str):
        session = await self.bot.game.open_session(interaction.user.id)
        if session is None:
            await interaction.response.send_message(
                '⚠️ Create your character first with `/register`.', ephemeral=True
            )
            return

        try:
            result = session.claim_quest(quest)
        except QuestClaimError as e:
            await interaction.response.send_message(f'❌ {e}', ephemeral=True)
            return

        logger.info(f'{interaction.user.id} claimed quest {quest}')
        await interaction.response.send_message(embed=claim_result_embed(result))


async def setup(bot: commands.Bot):
    await bot.add_cog(QuestCog(bot))
