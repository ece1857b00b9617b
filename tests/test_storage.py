import json
import os
import stat
import threading

import pytest

from cognito_auth_client.storage import FileStorage, MemoryStorage


def wait_for_sync(storage):
    done = threading.Event()
    errors = []

    def callback(error):
        errors.append(error)
        done.set()

    storage.sync(callback)
    assert done.wait(5)
    return errors[0]


def test_memory_storage_has_no_sync():
    storage = MemoryStorage()
    storage.set_item('a', '1')

    assert not hasattr(storage, 'sync')
    assert storage.get_item('a') == '1'
    storage.remove_item('a')
    storage.remove_item('missing')
    assert storage.get_item('a') is None


def test_file_storage_loads_existing_file(tmp_path):
    path = tmp_path / 'tokens.json'
    path.write_text(json.dumps({'key': 'value'}))
    storage = FileStorage(path)

    assert storage.get_item('key') is None
    assert wait_for_sync(storage) is None
    assert storage.get_item('key') == 'value'


def test_file_storage_without_file(tmp_path):
    storage = FileStorage(tmp_path / 'missing' / 'tokens.json')

    assert wait_for_sync(storage) is None
    assert storage.get_item('key') is None


def test_file_storage_writes_through(tmp_path):
    path = tmp_path / 'nested' / 'tokens.json'
    storage = FileStorage(path)
    wait_for_sync(storage)
    storage.set_item('a', '1')
    storage.set_item('b', '2')
    storage.remove_item('a')

    assert json.loads(path.read_text()) == {'b': '2'}

    reloaded = FileStorage(path)
    wait_for_sync(reloaded)
    assert reloaded.get_item('b') == '2'

    reloaded.clear()
    assert json.loads(path.read_text()) == {}


def test_writes_before_sync_are_merged_with_file(tmp_path):
    path = tmp_path / 'tokens.json'
    path.write_text(json.dumps({'persisted': 'refresh-token', 'stale': 'old', 'gone': 'x'}))
    storage = FileStorage(path)

    storage.set_item('new', 'value')
    storage.set_item('stale', 'fresh')
    storage.remove_item('gone')
    # Nothing reaches disk until the file has been loaded
    assert json.loads(path.read_text()) == {'persisted': 'refresh-token', 'stale': 'old', 'gone': 'x'}

    assert wait_for_sync(storage) is None

    assert storage.get_item('persisted') == 'refresh-token'
    assert storage.get_item('new') == 'value'
    assert storage.get_item('stale') == 'fresh'
    assert storage.get_item('gone') is None
    assert json.loads(path.read_text()) == {'persisted': 'refresh-token', 'stale': 'fresh', 'new': 'value'}


def test_clear_before_sync_discards_file_contents(tmp_path):
    path = tmp_path / 'tokens.json'
    path.write_text(json.dumps({'persisted': 'refresh-token'}))
    storage = FileStorage(path)

    storage.clear()
    storage.set_item('new', 'value')
    wait_for_sync(storage)

    assert json.loads(path.read_text()) == {'new': 'value'}


@pytest.mark.skipif(os.name != 'posix', reason='POSIX file modes')
def test_token_file_is_private(tmp_path):
    path = tmp_path / 'tokens.json'
    path.write_text('{}')
    os.chmod(path, 0o644)
    storage = FileStorage(path)
    wait_for_sync(storage)

    storage.set_item('refresh', 'secret')

    assert stat.S_IMODE(os.stat(path).st_mode) == 0o600


def test_file_storage_reports_corrupt_file(tmp_path):
    path = tmp_path / 'tokens.json'
    path.write_text('{not json')

    error = wait_for_sync(FileStorage(path))

    assert isinstance(error, ValueError)
