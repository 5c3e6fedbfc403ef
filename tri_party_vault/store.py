"""
Record store for vault state.

Records are held in their packed fixed-size form. Mutation happens only
through ``transaction``: the caller works on a decoded copy, and the packed
bytes are replaced only when the block exits normally and the copy still
satisfies every invariant. A failed operation therefore leaves the stored
record byte-for-byte unchanged.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List

from .errors import StateError
from .state import VaultRecord

logger = logging.getLogger("tri_party_vault.store")


class VaultRecordStore:

    def __init__(self):
        self._records: Dict[str, bytes] = {}
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        """Held by every transaction; hold it to check and destroy a record atomically"""
        return self._lock

    def __contains__(self, address: str) -> bool:
        return address in self._records

    def addresses(self) -> List[str]:
        return list(self._records)

    def raw(self, address: str) -> bytes:
        """Packed bytes as persisted"""
        try:
            return self._records[address]
        except KeyError:
            raise StateError("VaultNotFound", f"No vault at {address[:16]}...") from None

    def load(self, address: str) -> VaultRecord:
        return VaultRecord.unpack(self.raw(address))

    def create(self, address: str, record: VaultRecord) -> None:
        with self._lock:
            if address in self._records:
                raise StateError("VaultExists", f"Vault {address[:16]}... already initialized")
            record.check_invariants()
            self._records[address] = record.pack()
        logger.info(f"Created vault record {address[:16]}...")

    @contextmanager
    def transaction(self, address: str) -> Iterator[VaultRecord]:
        """Yield a working copy; commit it only if the block succeeds"""
        with self._lock:
            before = self.load(address)
            working = before.copy()
            yield working
            working.check_invariants(previous=before)
            self._records[address] = working.pack()

    def destroy(self, address: str) -> VaultRecord:
        with self._lock:
            record = self.load(address)
            del self._records[address]
        logger.info(f"Destroyed vault record {address[:16]}...")
        return record
