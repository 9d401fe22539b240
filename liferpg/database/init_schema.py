import logging

from liferpg.database.db_manager import DBManager

logger = logging.getLogger(__name__)


def init_schema(db: DBManager) -> None:
    '''Create the document store tables if they don't already exist.'''
    # --- USER DOCUMENTS TABLE ---
    db.execute(
        '''
        CREATE TABLE IF NOT EXISTS user_documents (
            user_id TEXT PRIMARY KEY,
            profile JSONB NOT NULL,
            game_state JSONB NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
        '''
    )


def run(db: DBManager) -> None:
    init_schema(db)
    tables = db.fetchall(
        'SELECT table_name FROM information_schema.tables '
        "WHERE table_schema = 'public' ORDER BY table_name"
    )
    logger.info(f'Database ready; tables: {[t["table_name"] for t in tables]}')


if __name__ == '__main__':
    with DBManager() as _db:
        run(_db)
