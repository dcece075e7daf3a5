# clubvote/audit/audit_logger.py

import os
import json
import hashlib
import base64
import logging
import threading
from datetime import datetime, timezone
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

logger = logging.getLogger(__name__)

# Append-only audit trail of member logins, admin actions, votes and
# election transitions. Each JSON line carries the hash of the line before it
# and an Ed25519 signature, so edited, reordered or removed lines are detected
# by verify_log_integrity(). Codes and passwords are never written here.

AUDIT_FILENAME = 'audit.log'


def hash_identifier(value):
    """One-way reference to a member id for audit entries."""
    return hashlib.sha256(str(value).encode()).hexdigest()


def _canonical(body):
    return json.dumps(body, sort_keys=True).encode()


class AuditLogger:
    def __init__(self, log_dir='logs', signing_key=None):
        self.log_dir = log_dir
        self.log_file = os.path.join(log_dir, AUDIT_FILENAME)
        self.signing_key = signing_key or Ed25519PrivateKey.generate()
        self._lock = threading.Lock()

        os.makedirs(log_dir, exist_ok=True)
        self.previous_hash = self._last_hash()

    def _last_hash(self):
        """Chain head left by an earlier process writing to the same file."""
        entries = self._read_lines()
        if not entries:
            return None
        try:
            return json.loads(entries[-1]).get('hash')
        except json.JSONDecodeError:
            logger.warning("Last audit entry in %s is not valid JSON; starting a new chain", self.log_file)
            return None

    def _read_lines(self):
        if not os.path.exists(self.log_file):
            return []
        with open(self.log_file, 'r') as f:
            return [line for line in f if line.strip()]

    def log_event(self, event_type, data=None, actor_id=None):
        """Append one signed entry. Failures are logged, never raised to the caller."""
        with self._lock:
            body = {
                'timestamp': datetime.now(timezone.utc).isoformat(),
                'event_type': event_type,
                'data': data or {},
                'actor_id': actor_id,
                'previous_hash': self.previous_hash,
            }
            try:
                payload = _canonical(body)
                sealed = dict(body,
                              hash=hashlib.sha256(payload).hexdigest(),
                              signature=base64.b64encode(self.signing_key.sign(payload)).decode())
                with open(self.log_file, 'a') as f:
                    f.write(json.dumps(sealed) + '\n')
            except (OSError, TypeError, ValueError):
                logger.exception("Audit log write failed for event %s", event_type)
                return
            self.previous_hash = sealed['hash']

    def read_entries(self):
        return [json.loads(line) for line in self._read_lines()]

    def verify_log_integrity(self):
        """True when every line is unmodified, correctly signed and chained to its predecessor."""
        public_key = self.signing_key.public_key()
        expected_previous = None
        try:
            for entry in self.read_entries():
                body = {k: v for k, v in entry.items() if k not in ('hash', 'signature')}
                if body.get('previous_hash') != expected_previous:
                    return False
                payload = _canonical(body)
                if hashlib.sha256(payload).hexdigest() != entry['hash']:
                    return False
                public_key.verify(base64.b64decode(entry['signature']), payload)
                expected_previous = entry['hash']
        except (InvalidSignature, KeyError, ValueError):
            return False
        return True
