import logging

from discord import Interaction, app_commands
from discord.ext import commands

from liferpg.components.narration import send_narration
from liferpg.models.activity import CATALOG
from liferpg.services.progression import InvalidLogError
from liferpg.utils.embeds import log_result_embed

logger = logging.getLogger(__name__)


class ActivityCog(commands.Cog):
    '''Logging activities to earn XP.'''

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    # --- Autocomplete for activity ---
    async def activity_autocomplete(self, interaction: Interaction, current: str):
        current = current.lower()
        return [
            app_commands.Choice(name=f'{a.label} ({a.unit})', value=a.id)
            for a in CATALOG
            if current in a.label.lower() or current in a.id
        ][:25]

    # --- Command: /log ---
    @app_commands.command(name='log', description='Log an activity to earn XP')
    @app_commands.describe(
        activity='What you did',
        amount='How much (in the unit shown next to the activity)',
    )
    @app_commands.autocomplete(activity=activity_autocomplete)
    async def log(self, interaction: Interaction, activity: str, amount: float):
        session = await self.bot.game.open_session(interaction.user.id)
        if session is None:
            await interaction.response.send_message(
                '⚠️ Create your character first with `/register`.', ephemeral=True
            )
            return

        try:
            outcome = session.log_activity(activity, amount)
        except InvalidLogError as e:
            await interaction.response.send_message(f'❌ {e}', ephemeral=True)
            return

        logger.info(
            f'{interaction.user.id} logged {outcome.log.amount:g} {activity} '
            f'(+{outcome.gain.xp_gained} XP)'
        )
        await interaction.response.send_message(embed=log_result_embed(outcome))
        await send_narration(interaction, session)


async def setup(bot: commands.Bot):
    await bot.add_cog(ActivityCog(bot))
