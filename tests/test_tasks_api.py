import re
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest


@pytest.mark.asyncio
async def test_create_list_update_delete(client, auth_headers):
    h = await auth_headers(client)

    r = await client.post('/tasks', headers=h, json={'id': 'task-1', 'title': 'Pay rent', 'dueDate': '2024-06-15', 'completed': False})
    assert r.status_code == 201
    created = r.json()
    assert created['id'] == 'task-1'
    assert created['title'] == 'Pay rent'
    assert created['dueDate'] == '2024-06-15'
    assert created['completed'] is False
    assert created['createdAt']

    listed = (await client.get('/tasks', headers=h)).json()
    assert [t['id'] for t in listed] == ['task-1']
    assert set(listed[0]) == {'id', 'title', 'dueDate', 'completed', 'createdAt'}

    r = await client.put('/tasks/task-1', headers=h, json={'title': 'Pay rent', 'dueDate': None, 'completed': True})
    assert r.status_code == 200
    assert r.json()['completed'] is True
    assert r.json()['dueDate'] is None
    assert r.json()['createdAt'] == created['createdAt']

    r = await client.delete('/tasks/task-1', headers=h)
    assert r.status_code == 200
    assert r.json() == {'message': 'Task deleted successfully'}
    assert (await client.get('/tasks', headers=h)).json() == []

    again = await client.delete('/tasks/task-1', headers=h)
    assert again.status_code == 404
    assert again.json()['code'] == 'not_found'


@pytest.mark.asyncio
async def test_server_generates_id_when_missing(client, auth_headers):
    h = await auth_headers(client)
    r = await client.post('/tasks', headers=h, json={'title': 'No id'})
    assert r.status_code == 201
    assert re.fullmatch(r'[0-9a-f]{32}', r.json()['id'])
    assert r.json()['dueDate'] is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    'payload',
    [
        {'title': ''},
        {'title': '   '},
        {'dueDate': '2024-06-15'},
        {'title': 'ok', 'dueDate': '15/06/2024'},
        {'title': 'ok', 'dueDate': '2024-13-01'},
        {'title': 'ok', 'completed': 'maybe'},
    ],
)
async def test_create_rejects_bad_input(client, auth_headers, payload):
    h = await auth_headers(client)
    r = await client.post('/tasks', headers=h, json=payload)
    assert r.status_code == 400
    assert r.json()['code'] == 'validation_error'
    assert r.json()['error']
    assert (await client.get('/tasks', headers=h)).json() == []


@pytest.mark.asyncio
async def test_duplicate_task_id_rejected(client, auth_headers):
    h = await auth_headers(client)
    assert (await client.post('/tasks', headers=h, json={'id': 'dup', 'title': 'one'})).status_code == 201
    r = await client.post('/tasks', headers=h, json={'id': 'dup', 'title': 'two'})
    assert r.status_code == 400
    tasks = (await client.get('/tasks', headers=h)).json()
    assert [t['title'] for t in tasks] == ['one']


@pytest.mark.asyncio
async def test_partial_update_keeps_other_fields(client, auth_headers):
    h = await auth_headers(client)
    await client.post('/tasks', headers=h, json={'id': 't', 'title': 'Dentist', 'dueDate': '2024-06-20'})

    r = await client.put('/tasks/t', headers=h, json={'completed': True})
    assert r.status_code == 200
    assert r.json()['title'] == 'Dentist'
    assert r.json()['dueDate'] == '2024-06-20'
    assert r.json()['completed'] is True

    r = await client.put('/tasks/t', headers=h, json={'dueDate': '2024-06-21'})
    assert r.json()['dueDate'] == '2024-06-21'
    assert r.json()['completed'] is True

    bad = await client.put('/tasks/t', headers=h, json={'title': '', 'completed': False})
    assert bad.status_code == 400
    stored = (await client.get('/tasks/t', headers=h)).json()
    assert stored['title'] == 'Dentist'
    assert stored['completed'] is True


@pytest.mark.asyncio
async def test_update_missing_task_is_404(client, auth_headers):
    h = await auth_headers(client)
    r = await client.put('/tasks/nope', headers=h, json={'title': 'x'})
    assert r.status_code == 404
    assert r.json() == {'error': 'Task not found', 'code': 'not_found'}


@pytest.mark.asyncio
async def test_tasks_are_owner_scoped(client, auth_headers):
    alice = await auth_headers(client, 'alice', 'secret1')
    bob = await auth_headers(client, 'bob', 'secret2')
    await client.post('/tasks', headers=alice, json={'id': 'a1', 'title': 'alice task', 'dueDate': '2024-06-15'})

    assert (await client.get('/tasks', headers=bob)).json() == []
    assert (await client.get('/tasks/a1', headers=bob)).status_code == 404
    assert (await client.put('/tasks/a1', headers=bob, json={'title': 'hijacked', 'completed': True})).status_code == 404
    assert (await client.delete('/tasks/a1', headers=bob)).status_code == 404

    mine = (await client.get('/tasks', headers=alice)).json()
    assert len(mine) == 1
    assert mine[0]['title'] == 'alice task'
    assert mine[0]['completed'] is False

    # bob cannot reuse alice's id to shadow her task either
    r = await client.post('/tasks', headers=bob, json={'id': 'a1', 'title': 'bob task'})
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_list_orders_by_due_date_with_undated_last(client, auth_headers):
    h = await auth_headers(client)
    for tid, due in (('late', '2024-07-01'), ('none', None), ('early', '2024-06-01')):
        await client.post('/tasks', headers=h, json={'id': tid, 'title': tid, 'dueDate': due})
    ids = [t['id'] for t in (await client.get('/tasks', headers=h)).json()]
    assert ids == ['early', 'late', 'none']


@pytest.mark.asyncio
async def test_overview_buckets_and_labels(client, auth_headers):
    h = await auth_headers(client)
    today = datetime.now(ZoneInfo('UTC')).date()

    def d(offset):
        return (today + timedelta(days=offset)).isoformat()

    await client.post('/tasks', headers=h, json={'id': 'A', 'title': 'overdue', 'dueDate': d(-1)})
    await client.post('/tasks', headers=h, json={'id': 'B', 'title': 'today', 'dueDate': d(0)})
    await client.post('/tasks', headers=h, json={'id': 'C', 'title': 'tomorrow', 'dueDate': d(1), 'completed': True})
    await client.post('/tasks', headers=h, json={'id': 'D', 'title': 'later', 'dueDate': d(2)})
    await client.post('/tasks', headers=h, json={'id': 'E', 'title': 'someday'})

    r = await client.get('/tasks/overview', headers=h, params={'tz': 'UTC'})
    assert r.status_code == 200
    body = r.json()
    assert body['today'] == today.isoformat()
    assert [t['id'] for t in body['mustDo']] == ['A', 'B', 'C']
    assert [t['label'] for t in body['mustDo']] == ['Overdue', 'Today', 'Tomorrow']
    assert all(t['mustDo'] for t in body['mustDo'])
    assert [t['id'] for t in body['all']] == ['D', 'E']
    assert body['all'][1]['label'] is None
    assert not any(t['mustDo'] for t in body['all'])


@pytest.mark.asyncio
async def test_null_completed_reads_as_not_completed(client, auth_headers):
    h = await auth_headers(client)
    r = await client.post('/tasks', headers=h, json={'id': 'n', 'title': 'x', 'completed': None})
    assert r.status_code == 201
    assert r.json()['completed'] is False

    await client.put('/tasks/n', headers=h, json={'completed': True})
    r = await client.put('/tasks/n', headers=h, json={'completed': None})
    assert r.status_code == 200
    assert r.json()['completed'] is False
