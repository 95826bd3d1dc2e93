import json

import httpx
import pytest

from conftest import PROJECT_ID, FakeSigner
from errors import NotFoundError, StoreError
from firestore_client import FirestoreClient
from google_auth import TokenProvider


@pytest.mark.anyio
async def test_create_posts_encoded_document_with_explicit_id(store, firestore):
    await store.create('job-1', {'destination': 'Rome', 'durationDays': 2, 'error': None})

    request = firestore.requests[-1]
    assert request.method == 'POST'
    assert request.url.path == (f'/v1/projects/{PROJECT_ID}/databases/(default)'
                                '/documents/itineraries')
    assert request.url.params['documentId'] == 'job-1'
    assert json.loads(request.content) == {'fields': {
        'destination': {'stringValue': 'Rome'},
        'durationDays': {'integerValue': '2'},
        'error': {'nullValue': None},
    }}


@pytest.mark.anyio
async def test_every_call_mints_a_fresh_token(store, firestore):
    await store.create('job-1', {'a': 1})
    await store.get('job-1')
    await store.patch('job-1', {'a': 2})

    assert firestore.token_requests == 3
    bearer = [r.headers['Authorization'] for r in firestore.requests if 'firestore' in r.url.host]
    assert bearer == ['Bearer tok-1', 'Bearer tok-2', 'Bearer tok-3']


@pytest.mark.anyio
async def test_patch_update_mask_is_exactly_the_partial_keys(store, firestore):
    await store.create('job-1', {'status': 'processing', 'destination': 'Rome'})
    await store.patch('job-1', {'status': 'failed', 'error': 'boom'})

    request = firestore.requests[-1]
    assert request.method == 'PATCH'
    assert request.url.path.endswith('/itineraries/job-1')
    assert request.url.params.get_list('updateMask.fieldPaths') == ['status', 'error']
    assert await store.get('job-1') == {'status': 'failed', 'destination': 'Rome', 'error': 'boom'}


@pytest.mark.anyio
async def test_patch_is_idempotent(store):
    await store.create('job-1', {'status': 'processing', 'itinerary': [], 'error': None})
    update = {'status': 'completed', 'itinerary': [{'day': 1}], 'completedAt': '2024-01-01T00:00:00+00:00'}

    await store.patch('job-1', update)
    once = await store.get('job-1')
    await store.patch('job-1', update)

    assert await store.get('job-1') == once


@pytest.mark.anyio
async def test_get_unknown_document_is_not_found(store):
    with pytest.raises(NotFoundError):
        await store.get('missing')


@pytest.mark.anyio
async def test_create_failure_raises_store_error(store, firestore):
    firestore.fail_create = True
    with pytest.raises(StoreError) as excinfo:
        await store.create('job-1', {'a': 1})
    assert excinfo.value.status_code == 500


@pytest.mark.anyio
async def test_create_duplicate_id_raises_store_error(store):
    await store.create('job-1', {'a': 1})
    with pytest.raises(StoreError):
        await store.create('job-1', {'a': 1})


@pytest.mark.anyio
async def test_patch_failure_raises_store_error(store, firestore):
    firestore.fail_patch = True
    with pytest.raises(StoreError):
        await store.patch('job-1', {'status': 'failed'})


@pytest.mark.anyio
async def test_transport_errors():
    def handler(request):
        if request.url.host == 'oauth2.googleapis.com':
            return httpx.Response(200, json={'access_token': 'tok'})
        raise httpx.ReadTimeout('timed out', request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        tokens = TokenProvider('svc@example.com', client, signer=FakeSigner())
        store = FirestoreClient(PROJECT_ID, tokens, client, collection='trips')
        with pytest.raises(StoreError):
            await store.create('job-1', {'a': 1})
        with pytest.raises(NotFoundError):
            await store.get('job-1')


@pytest.mark.anyio
@pytest.mark.parametrize('response', [
    httpx.Response(200, content=b'<html>gateway</html>'),
    httpx.Response(200, json=['not', 'a', 'document']),
    httpx.Response(200, json={'fields': {'durationDays': {'integerValue': 'three'}}}),
])
async def test_unreadable_document_is_not_found(response):
    def handler(request):
        if request.url.host == 'oauth2.googleapis.com':
            return httpx.Response(200, json={'access_token': 'tok'})
        return response

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        tokens = TokenProvider('svc@example.com', client, signer=FakeSigner())
        store = FirestoreClient(PROJECT_ID, tokens, client)
        with pytest.raises(NotFoundError):
            await store.get('job-1')
