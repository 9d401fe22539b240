import discord

from liferpg.models.activity import ATTRIBUTE_LABELS, get_activity
from liferpg.models.game_state import GameState, Quest, QuestType, UserProfile
from liferpg.services.progression import ClaimResult, LogOutcome, experience_required
from liferpg.utils.helper import to_millis, local_now


def _progress_bar(current: float, target: float, width: int = 10) -> str:
    filled = 0 if target <= 0 else min(width, int(width * current / target))
    return '█' * filled + '░' * (width - filled)


def _quest_line(quest: Quest) -> str:
    activity = get_activity(quest.activity_id)
    label = activity.label if activity else quest.activity_id
    unit = activity.unit if activity else ''
    if quest.is_claimed:
        status = '✅'
    elif quest.is_complete:
        status = '🎁'
    else:
        status = '▫️'
    return (
        f'{status} **{label}** {_progress_bar(quest.current_amount, quest.target_amount)} '
        f'{quest.current_amount:g}/{quest.target_amount:g} {unit} ({quest.xp_reward} XP)'
    )


def profile_embed(profile: UserProfile, state: GameState) -> discord.Embed:
    embed = discord.Embed(
        title=f"{profile.name}'s Character", color=discord.Color.blurple()
    )
    needed = experience_required(state.level)
    embed.add_field(name='Class', value=state.class_title)
    embed.add_field(name='Level', value=state.level)
    embed.add_field(
        name='XP',
        value=f'{_progress_bar(state.current_xp, needed)} {state.current_xp}/{needed}',
        inline=False,
    )

    attributes = '\n'.join(
        f'{ATTRIBUTE_LABELS[attr]}: {value:g}' for attr, value in state.attributes.items()
    )
    embed.add_field(name='Attributes', value=attributes, inline=False)

    buff = state.active_buff
    if buff and buff.is_active(to_millis(local_now())):
        embed.add_field(name='Active Buff', value=buff.description, inline=False)

    embed.set_footer(text=f'Total XP: {state.total_xp}')
    return embed


def quest_board_embed(state: GameState) -> discord.Embed:
    embed = discord.Embed(title='Quest Board', color=discord.Color.gold())
    for quest_type, title in ((QuestType.DAILY, 'Daily'), (QuestType.WEEKLY, 'Weekly')):
        quests = [q for q in state.quests if q.type == quest_type]
        value = '\n'.join(_quest_line(q) for q in quests) or 'No quests yet.'
        embed.add_field(name=title, value=value, inline=False)
    return embed


def log_result_embed(outcome: LogOutcome) -> discord.Embed:
    gain = outcome.gain
    activity = outcome.activity
    embed = discord.Embed(
        title=f'{activity.label}: {outcome.log.amount:g} {activity.unit}',
        color=discord.Color.green(),
    )
    xp_text = f'+{gain.xp_gained} XP'
    if gain.buff_applied:
        xp_text += ' (buffed)'
    embed.add_field(name='Reward', value=xp_text)
    embed.add_field(name='Level', value=gain.level)
    if gain.leveled_up:
        embed.description = f'🎉 **LEVEL UP!** You reached level {gain.level}.'
    embed.set_footer(text=f'Class: {outcome.state.class_title}')
    return embed


def claim_result_embed(result: ClaimResult) -> discord.Embed:
    activity = get_activity(result.quest.activity_id)
    label = activity.label if activity else result.quest.activity_id
    embed = discord.Embed(
        title=f'Quest complete: {label}', color=discord.Color.gold()
    )
    embed.add_field(name='Reward', value=f'+{result.gain.xp_gained} XP')
    embed.add_field(name='Level', value=result.gain.level)
    if result.gain.leveled_up:
        embed.description = f'🎉 **LEVEL UP!** You reached level {result.gain.level}.'
    return embed
