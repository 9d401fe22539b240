from liferpg.database.local_cache import LocalCache
from liferpg.services.interfaces import KeyValueCache


def test_set_get_remove(tmp_path):
    cache = LocalCache(str(tmp_path / 'cache.db'))
    assert isinstance(cache, KeyValueCache)

    assert cache.get('liferpg_needs_sync:1') is None
    cache.set('liferpg_needs_sync:1', 'true')
    assert cache.get('liferpg_needs_sync:1') == 'true'

    cache.set('liferpg_needs_sync:1', 'false')
    assert cache.get('liferpg_needs_sync:1') == 'false'

    cache.remove('liferpg_needs_sync:1')
    assert cache.get('liferpg_needs_sync:1') is None
    cache.remove('never-set')


def test_values_survive_a_new_instance(tmp_path):
    path = str(tmp_path / 'nested' / 'cache.db')
    LocalCache(path).set('liferpg_game:7', '{"level": 3}')
    assert LocalCache(path).get('liferpg_game:7') == '{"level": 3}'


def test_path_from_environment(tmp_path, monkeypatch):
    path = tmp_path / 'env.db'
    monkeypatch.setenv('LOCAL_CACHE_PATH', str(path))
    cache = LocalCache()
    assert cache.db_path == str(path)
    assert path.exists()
