"""Shared fixtures: in-memory Firestore + token endpoint behind httpx.MockTransport."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock
from urllib.parse import parse_qs

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from firestore_client import FirestoreClient
from google_auth import TOKEN_URL, TokenProvider

PROJECT_ID   = 'test-project'
CLIENT_EMAIL = 'jobs@test-project.iam.gserviceaccount.com'


@pytest.fixture
def anyio_backend():
    return 'asyncio'


@pytest.fixture(scope='session')
def rsa_keypair():
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode('utf-8')
    return {'private_key': private_key, 'private_pem': private_pem,
            'public_key': private_key.public_key()}


class FakeSigner:
    def __init__(self):
        self.signed: list[bytes] = []

    def sign(self, data: bytes) -> bytes:
        self.signed.append(data)
        return b'fake-signature'


class InMemoryFirestore:
    """
    Just enough of the Firestore REST API for one collection: create with
    documentId, PATCH honouring updateMask.fieldPaths, GET.  Also answers the
    OAuth token endpoint so a single MockTransport serves both services.
    """

    def __init__(self):
        self.docs: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []
        self.token_requests = 0
        self.fail_patch = False
        self.fail_create = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if str(request.url) == TOKEN_URL:
            self.token_requests += 1
            form = parse_qs(request.content.decode())
            assert form['grant_type'] == ['urn:ietf:params:oauth:grant-type:jwt-bearer']
            return httpx.Response(200, json={'access_token': f'tok-{self.token_requests}',
                                             'expires_in': 3599, 'token_type': 'Bearer'})

        assert request.headers['Authorization'].startswith('Bearer tok-')
        segments = request.url.path.split('/')

        if request.method == 'POST':
            if self.fail_create:
                return httpx.Response(500, json={'error': {'message': 'boom'}})
            doc_id = request.url.params['documentId']
            if doc_id in self.docs:
                return httpx.Response(409, json={'error': {'status': 'ALREADY_EXISTS'}})
            self.docs[doc_id] = json.loads(request.content)['fields']
            return httpx.Response(200, json={'fields': self.docs[doc_id]})

        doc_id = segments[-1]
        if request.method == 'PATCH':
            if self.fail_patch:
                return httpx.Response(503, json={'error': {'message': 'unavailable'}})
            fields = json.loads(request.content)['fields']
            current = self.docs.setdefault(doc_id, {})
            for path in request.url.params.get_list('updateMask.fieldPaths'):
                if path in fields:
                    current[path] = fields[path]
                else:
                    current.pop(path, None)
            return httpx.Response(200, json={'fields': current})

        if request.method == 'GET':
            if doc_id not in self.docs:
                return httpx.Response(404, json={'error': {'status': 'NOT_FOUND'}})
            return httpx.Response(200, json={'name': request.url.path, 'fields': self.docs[doc_id]})

        return httpx.Response(405)


@pytest.fixture
def firestore():
    return InMemoryFirestore()


@pytest.fixture
async def http_client(firestore):
    async with httpx.AsyncClient(transport=httpx.MockTransport(firestore.handler)) as client:
        yield client


@pytest.fixture
def token_provider(http_client):
    return TokenProvider(CLIENT_EMAIL, http_client, signer=FakeSigner())


@pytest.fixture
def store(http_client, token_provider):
    return FirestoreClient(PROJECT_ID, token_provider, http_client)


def fake_anthropic(*texts):
    """AsyncAnthropic stand-in whose messages.create answers with `texts` in order."""
    responses = [
        t if isinstance(t, Exception) else SimpleNamespace(content=[SimpleNamespace(type='text', text=t)])
        for t in texts
    ]
    return SimpleNamespace(messages=SimpleNamespace(create=AsyncMock(side_effect=responses)))


async def no_sleep(delay):
    return None


def sample_itinerary(days: int = 3) -> list[dict]:
    return [
        {
            'day': n,
            'theme': f'Theme {n}',
            'activities': [
                {'time': '09:00', 'description': f'Morning walk {n}', 'location': 'Le Marais'},
                {'time': '14:00', 'description': f'Museum {n}', 'location': 'Louvre'},
            ],
        }
        for n in range(1, days + 1)
    ]
