import logging
from typing import Any, Optional

import psycopg
from psycopg.types.json import Json

from liferpg.database.db_manager import DBManager
from liferpg.models.game_state import GameState, UserDocument, UserProfile
from liferpg.utils.tracing import trace_span

logger = logging.getLogger(__name__)


class PostgresDocumentStore:
    '''One JSONB document per user: profile plus game state.'''

    table = 'user_documents'

    def save(self, user_id: str, profile: UserProfile, state: GameState) -> bool:
        sql = (
            f'INSERT INTO {self.table} (user_id, profile, game_state, updated_at) '
            'VALUES (%s, %s, %s, now()) '
            'ON CONFLICT (user_id) DO UPDATE SET '
            'profile = EXCLUDED.profile, game_state = EXCLUDED.game_state, '
            'updated_at = EXCLUDED.updated_at'
        )
        params = (str(user_id), Json(profile.to_dict()), Json(state.to_dict()))
        with trace_span('store.save', {'user_id': user_id}):
            try:
                with DBManager() as db:
                    db.execute(sql, params)
            except (psycopg.Error, RuntimeError):
                logger.error(f'Failed to save document for {user_id}', exc_info=True)
                return False
        return True

    def load(self, user_id: str) -> Optional[UserDocument]:
        sql = f'SELECT profile, game_state FROM {self.table} WHERE user_id = %s'
        with trace_span('store.load', {'user_id': user_id}):
            try:
                with DBManager() as db:
                    row: Optional[dict[str, Any]] = db.fetchone(sql, (str(user_id),))
            except (psycopg.Error, RuntimeError):
                logger.error(f'Failed to load document for {user_id}', exc_info=True)
                return None
        if not row:
            return None
        try:
            return UserDocument(
                profile=UserProfile.from_dict(row['profile']),
                state=GameState.from_dict(row['game_state']),
            )
        except (ValueError, KeyError, TypeError, AttributeError):
            logger.error(f'Stored document for {user_id} is unreadable', exc_info=True)
            return None
