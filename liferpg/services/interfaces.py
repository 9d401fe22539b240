from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from liferpg.models.game_state import GameState, UserDocument, UserProfile


@runtime_checkable
class DocumentStore(Protocol):
    '''Remote per-user document storage.'''

    def save(self, user_id: str, profile: UserProfile, state: GameState) -> bool:
        '''
        Persist the user's document. Return False on failure instead of
        raising, so the caller can flag the state for a later sync.
        '''
        pass

    def load(self, user_id: str) -> Optional[UserDocument]:
        pass


@runtime_checkable
class KeyValueCache(Protocol):
    '''Small on-device string store.'''

    def get(self, key: str) -> Optional[str]:
        pass

    def set(self, key: str, value: str) -> None:
        pass

    def remove(self, key: str) -> None:
        pass


@runtime_checkable
class TextOracle(Protocol):
    '''Free-text generator behind the narrator. May raise on any failure.'''

    def complete(self, prompt: str) -> str:
        pass
