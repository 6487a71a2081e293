"""
Tracked-state stores.

The controller records each managed VM's identity and last observed
attributes outside vCenter. ``InMemoryStateStore`` backs tests and one-shot
CLI runs; ``RestStateStore`` persists records in a PostgREST-compatible
table.
"""

import logging
from typing import Dict, Optional

import requests

from vm_provisioner.errors import StateStoreError
from vm_provisioner.models import TrackedState
from vm_provisioner.utils import utc_now_iso

logger = logging.getLogger(__name__)


class StateStore:
    """Interface: records are keyed by the VM name from the desired state."""

    def get(self, key: str) -> TrackedState:
        raise NotImplementedError

    def put(self, key: str, state: TrackedState) -> TrackedState:
        raise NotImplementedError

    def clear(self, key: str):
        raise NotImplementedError


class InMemoryStateStore(StateStore):
    def __init__(self):
        self._records: Dict[str, TrackedState] = {}

    def get(self, key: str) -> TrackedState:
        return self._records.get(key, TrackedState())

    def put(self, key: str, state: TrackedState) -> TrackedState:
        stored = state.model_copy(update={'updated_at': utc_now_iso()})
        self._records[key] = stored
        return stored

    def clear(self, key: str):
        self._records.pop(key, None)


class RestStateStore(StateStore):
    """Rows in ``{url}/rest/v1/{table}`` keyed by the ``name`` column."""

    def __init__(self, url: str, api_key: str, table: str = "virtual_machines",
                 verify_ssl: bool = False, timeout: int = 10):
        self.url = url.rstrip('/')
        self.api_key = api_key
        self.table = table
        self.verify_ssl = verify_ssl
        self.timeout = timeout

    @property
    def endpoint(self) -> str:
        return f"{self.url}/rest/v1/{self.table}"

    def _headers(self, prefer: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _check(self, response, context: str):
        if response.status_code in (401, 403):
            logger.error("Authorization failed while %s (HTTP %s). Verify the state store key.",
                         context, response.status_code)
        if response.status_code not in (200, 201, 204):
            raise StateStoreError(f"HTTP {response.status_code}: {response.text[:200]}", operation=context)

    def get(self, key: str) -> TrackedState:
        try:
            response = requests.get(
                self.endpoint,
                headers=self._headers(),
                params={"name": f"eq.{key}", "select": "*"},
                verify=self.verify_ssl,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise StateStoreError(str(e), operation="fetching tracked state") from e
        self._check(response, "fetching tracked state")

        try:
            rows = response.json()
        except ValueError as e:
            raise StateStoreError(f"invalid JSON in response: {e}", operation="fetching tracked state") from e
        if not rows:
            return TrackedState()
        row = rows[0]
        return TrackedState(
            id=row.get('vm_id') or "",
            memory_mb=row.get('memory_mb'),
            vcpu=row.get('vcpu'),
            ip_address=row.get('ip_address'),
            connection_info=row.get('connection_info') or {},
            updated_at=row.get('updated_at'),
        )

    def put(self, key: str, state: TrackedState) -> TrackedState:
        stored = state.model_copy(update={'updated_at': utc_now_iso()})
        payload = {
            'name': key,
            'vm_id': stored.id,
            'memory_mb': stored.memory_mb,
            'vcpu': stored.vcpu,
            'ip_address': stored.ip_address,
            'connection_info': stored.connection_info,
            'updated_at': stored.updated_at,
        }
        try:
            response = requests.post(
                self.endpoint,
                headers=self._headers("resolution=merge-duplicates,return=minimal"),
                params={"on_conflict": "name"},
                json=payload,
                verify=self.verify_ssl,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise StateStoreError(str(e), operation="saving tracked state") from e
        self._check(response, "saving tracked state")
        logger.debug("Saved tracked state for %s", key)
        return stored

    def clear(self, key: str):
        try:
            response = requests.delete(
                self.endpoint,
                headers=self._headers("return=minimal"),
                params={"name": f"eq.{key}"},
                verify=self.verify_ssl,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise StateStoreError(str(e), operation="clearing tracked state") from e
        self._check(response, "clearing tracked state")
        logger.debug("Cleared tracked state for %s", key)


def build_state_store(settings) -> StateStore:
    """REST store when a URL is configured, in-memory otherwise."""
    if settings.state_store_url:
        return RestStateStore(
            settings.state_store_url,
            settings.state_store_key,
            table=settings.state_store_table,
            verify_ssl=settings.verify_ssl,
        )
    return InMemoryStateStore()
