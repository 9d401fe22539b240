import asyncio
import logging
from datetime import datetime, time

import discord
from discord import Interaction, app_commands
from discord.ext import commands

from liferpg.components.onboarding import ProfileModal
from liferpg.models.game_state import Gender
from liferpg.utils.embeds import profile_embed

logger = logging.getLogger(__name__)


def parse_clock(value: str) -> time:
    '''Parse an HH:MM wall-clock time.'''
    try:
        return datetime.strptime(value.strip(), '%H:%M').time()
    except ValueError:
        raise ValueError(f'"{value}" is not a time like 23:30.') from None


class UserCog(commands.Cog):
    '''Character creation, profile and sleep tracking.'''

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @app_commands.command(
        name='register', description='Create your character or edit your character sheet'
    )
    @app_commands.describe(gender='Used by the narrator to address you')
    @app_commands.choices(
        gender=[app_commands.Choice(name=g.value.title(), value=g.value) for g in Gender]
    )
    async def register_user(
        self, interaction: Interaction, gender: app_commands.Choice[str]
    ):
        session = await self.bot.game.open_session(interaction.user.id)
        existing = session.profile if session else None
        await interaction.response.send_modal(
            ProfileModal(self.bot.game, Gender(gender.value), existing)
        )

    @app_commands.command(name='profile', description='Show your character sheet')
    async def show_profile(self, interaction: Interaction):
        session = await self.bot.game.open_session(interaction.user.id)
        if session is None:
            await interaction.response.send_message(
                '⚠️ Create your character first with `/register`.', ephemeral=True
            )
            return
        await interaction.response.send_message(
            embed=profile_embed(session.profile, session.state), ephemeral=True
        )

    @app_commands.command(
        name='sleep', description='Register last night\'s sleep for an XP buff'
    )
    @app_commands.describe(bed='Bed time, HH:MM', wake='Wake time, HH:MM')
    async def sleep(self, interaction: Interaction, bed: str, wake: str):
        session = await self.bot.game.open_session(interaction.user.id)
        if session is None:
            await interaction.response.send_message(
                '⚠️ Create your character first with `/register`.', ephemeral=True
            )
            return

        try:
            buff = session.register_sleep(parse_clock(bed), parse_clock(wake))
        except ValueError as e:
            await interaction.response.send_message(f'❌ {e}', ephemeral=True)
            return

        if buff is None:
            await interaction.response.send_message(
                '😴 Sleep registered. Not enough rest for a buff today.', ephemeral=True
            )
            return
        await interaction.response.send_message(f'😴 {session.narrator_text}')

    @app_commands.command(
        name='title', description='Ask the narrator for a title that fits your deeds'
    )
    async def title(self, interaction: Interaction):
        session = await self.bot.game.open_session(interaction.user.id)
        if session is None:
            await interaction.response.send_message(
                '⚠️ Create your character first with `/register`.', ephemeral=True
            )
            return

        await interaction.response.defer(thinking=True)
        suggestion = await asyncio.to_thread(
            self.bot.game.narrator.suggest_class_title, session.state
        )
        embed = discord.Embed(
            title=suggestion,
            description=f'Your class remains **{session.state.class_title}**.',
            color=discord.Color.purple(),
        )
        await interaction.followup.send(embed=embed)


async def setup(bot):
    await bot.add_cog(UserCog(bot))
