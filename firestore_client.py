"""
firestore_client.py — Minimal async Firestore REST client for job records.

Three calls, all against one collection (default 'itineraries'):

  create(doc_id, doc)     POST  .../documents/{collection}?documentId={id}
  patch(doc_id, partial)  PATCH .../documents/{collection}/{id}
                                ?updateMask.fieldPaths=<each key of partial>
  get(doc_id)             GET   .../documents/{collection}/{id}

Every call mints its own bearer token through the TokenProvider (no caching).
Documents go over the wire in Firestore's typed-value encoding
(firestore_codec).  Non-success responses raise StoreError from create/patch
and NotFoundError from get; the reason behind a failed read is not
distinguished from "does not exist".
"""

import logging
from typing import Any, Mapping

import httpx

from errors import EncodingError, NotFoundError, StoreError
from firestore_codec import document_to_fields, fields_to_document
from google_auth import TokenProvider

logger = logging.getLogger(__name__)

FIRESTORE_BASE_URL = 'https://firestore.googleapis.com/v1'


class FirestoreClient:

    def __init__(self, project_id: str, token_provider: TokenProvider,
                 http_client: httpx.AsyncClient, collection: str = 'itineraries',
                 base_url: str = FIRESTORE_BASE_URL):
        self._project_id = project_id
        self._tokens     = token_provider
        self._http       = http_client
        self._collection = collection
        self._base_url   = base_url.rstrip('/')

    @classmethod
    def from_settings(cls, settings, token_provider: TokenProvider,
                      http_client: httpx.AsyncClient) -> 'FirestoreClient':
        return cls(settings.project_id, token_provider, http_client,
                   collection=settings.collection)

    # ── URL / header helpers ──────────────────────────────────────────────────

    @property
    def collection_url(self) -> str:
        return (f'{self._base_url}/projects/{self._project_id}'
                f'/databases/(default)/documents/{self._collection}')

    def document_url(self, doc_id: str) -> str:
        return f'{self.collection_url}/{doc_id}'

    async def _auth_headers(self) -> dict:
        access = await self._tokens.mint()
        return {'Authorization': f'Bearer {access.token}'}

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise StoreError(f'Firestore {method} failed: {exc}') from exc

    # ── Operations ────────────────────────────────────────────────────────────

    async def create(self, doc_id: str, doc: Mapping[str, Any]) -> None:
        """Create the document with an explicit id (fails if it already exists)."""
        headers = await self._auth_headers()
        resp = await self._send(
            'POST', self.collection_url,
            params={'documentId': doc_id},
            json={'fields': document_to_fields(doc)},
            headers=headers,
        )
        if not resp.is_success:
            logger.error('Firestore create %s/%s: HTTP %d', self._collection, doc_id[:8], resp.status_code)
            raise StoreError(f'Firestore create failed with HTTP {resp.status_code}', resp.status_code)

    async def patch(self, doc_id: str, partial: Mapping[str, Any]) -> None:
        """Overwrite exactly the fields named in `partial`; other fields are left untouched."""
        headers = await self._auth_headers()
        params  = [('updateMask.fieldPaths', key) for key in partial]
        resp = await self._send(
            'PATCH', self.document_url(doc_id),
            params=params,
            json={'fields': document_to_fields(partial)},
            headers=headers,
        )
        if not resp.is_success:
            logger.error('Firestore patch %s/%s: HTTP %d', self._collection, doc_id[:8], resp.status_code)
            raise StoreError(f'Firestore update failed with HTTP {resp.status_code}', resp.status_code)

    async def get(self, doc_id: str) -> dict:
        headers = await self._auth_headers()
        try:
            resp = await self._http.get(self.document_url(doc_id), headers=headers)
        except httpx.HTTPError as exc:
            logger.warning('Firestore get %s failed: %s', doc_id[:8], exc)
            raise NotFoundError('Document not found') from exc
        if not resp.is_success:
            raise NotFoundError('Document not found')
        try:
            body = resp.json()
            return fields_to_document(body.get('fields') or {})
        except (ValueError, AttributeError, EncodingError) as exc:
            logger.warning('Firestore get %s: unreadable document: %s', doc_id[:8], exc)
            raise NotFoundError('Document not found') from exc
