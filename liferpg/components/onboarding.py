import logging
from datetime import date

import discord
from discord import Interaction

from liferpg.components.narration import send_narration
from liferpg.models.game_state import Gender, UserProfile
from liferpg.services.game_service import GameService
from liferpg.utils.embeds import profile_embed

logger = logging.getLogger(__name__)


class ProfileFormError(ValueError):
    pass


def parse_profile(
    name: str, dob: str, weight: str, height: str, gender: Gender, profession: str
) -> UserProfile:
    '''Validate the raw form fields and build a profile.'''
    name = name.strip()
    if not name:
        raise ProfileFormError('Name is required.')
    try:
        date.fromisoformat(dob.strip())
    except ValueError:
        raise ProfileFormError('Date of birth must look like YYYY-MM-DD.') from None
    try:
        weight_kg = float(weight.replace(',', '.'))
        height_cm = float(height.replace(',', '.'))
    except ValueError:
        raise ProfileFormError('Weight and height must be numbers.') from None
    if weight_kg <= 0 or height_cm <= 0:
        raise ProfileFormError('Weight and height must be positive.')
    return UserProfile(
        name=name,
        dob=dob.strip(),
        weight=weight_kg,
        height=height_cm,
        gender=gender,
        profession=profession.strip(),
    )


class ProfileModal(discord.ui.Modal, title='Character Sheet'):
    name = discord.ui.TextInput(label='Name', max_length=64)
    dob = discord.ui.TextInput(label='Date of birth (YYYY-MM-DD)', max_length=10)
    weight = discord.ui.TextInput(label='Weight (kg)', max_length=6)
    height = discord.ui.TextInput(label='Height (cm)', max_length=6)
    profession = discord.ui.TextInput(label='Profession', required=False, max_length=64)

    def __init__(
        self, game: GameService, gender: Gender, existing: UserProfile | None = None
    ):
        super().__init__()
        self.game = game
        self.gender = gender
        if existing is not None:
            self.name.default = existing.name
            self.dob.default = existing.dob
            self.weight.default = f'{existing.weight:g}'
            self.height.default = f'{existing.height:g}'
            self.profession.default = existing.profession

    async def on_submit(self, interaction: Interaction):
        try:
            profile = parse_profile(
                self.name.value,
                self.dob.value,
                self.weight.value,
                self.height.value,
                self.gender,
                self.profession.value or '',
            )
        except ProfileFormError as e:
            await interaction.response.send_message(f'❌ {e}', ephemeral=True)
            return

        session = self.game.get(interaction.user.id)
        if session is not None:
            session.update_profile(profile)
            await interaction.response.send_message(
                '✅ Character sheet updated.',
                embed=profile_embed(session.profile, session.state),
                ephemeral=True,
            )
            return

        session = await self.game.create_session(interaction.user.id, profile)
        await interaction.response.send_message(
            f'🎉 Welcome, {profile.name}! Your first quests are on the board.',
            embed=profile_embed(session.profile, session.state),
            ephemeral=True,
        )
        await send_narration(interaction, session)
