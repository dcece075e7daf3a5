# clubvote/database/store.py
"""Record store over the SQLAlchemy models.

Two capabilities are exposed:

- CollectionStore: list-shaped kinds (members, admins, sessions, positions,
  candidates, votes) addressed by kind name and a field/value pair.
- DocumentStore: the single election-status document.

Records cross this boundary as plain dicts so the services never hold ORM
instances between calls. Every write commits immediately; a failed commit is
rolled back and the original exception propagates.
"""

import logging

from clubvote import db
from clubvote.database.models import (
    Admin, Candidate, ElectionStatus, Member, Position, Session, Vote,
)

logger = logging.getLogger(__name__)

COLLECTIONS = {
    'members': Member,
    'admins': Admin,
    'sessions': Session,
    'positions': Position,
    'candidates': Candidate,
    'votes': Vote,
}


def to_record(instance):
    return {column.name: getattr(instance, column.name) for column in instance.__table__.columns}


class CollectionStore:
    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def _model(self, kind):
        try:
            return COLLECTIONS[kind]
        except KeyError:
            raise ValueError(f"Unknown entity type: {kind}")

    def _column(self, model, field):
        if field not in model.__table__.columns:
            raise ValueError(f"Unknown field {field!r} for {model.__tablename__}")
        return getattr(model, field)

    def _first(self, kind, field, value):
        model = self._model(kind)
        column = self._column(model, field)
        return self.session.query(model).filter(column == value).first()

    def read(self, kind):
        model = self._model(kind)
        return [to_record(row) for row in self.session.query(model).all()]

    def count(self, kind, **filters):
        model = self._model(kind)
        return self.session.query(model).filter_by(**filters).count()

    def find_by(self, kind, field, value):
        row = self._first(kind, field, value)
        return to_record(row) if row is not None else None

    def find_all_by(self, kind, field, value):
        model = self._model(kind)
        column = self._column(model, field)
        return [to_record(row) for row in self.session.query(model).filter(column == value).all()]

    def create(self, kind, record):
        model = self._model(kind)
        row = model(**record)
        self.session.add(row)
        self._commit(f"creating {kind}")
        return to_record(row)

    def update(self, kind, field, value, patch):
        row = self._first(kind, field, value)
        if row is None:
            return None
        for key, new_value in patch.items():
            self._column(type(row), key)
            setattr(row, key, new_value)
        self._commit(f"updating {kind}")
        return to_record(row)

    def remove(self, kind, field, value):
        row = self._first(kind, field, value)
        if row is None:
            return False
        self.session.delete(row)
        self._commit(f"removing {kind}")
        return True

    def _commit(self, action):
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            logger.error("Store error while %s", action)
            raise


class DocumentStore:
    """Singleton document backed by one row (id=1) of its table."""

    DOCUMENT_ID = 1

    def __init__(self, model=ElectionStatus, defaults=None, session=None):
        self.model = model
        self.defaults = dict(defaults or {})
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def _row(self):
        row = self.session.get(self.model, self.DOCUMENT_ID)
        if row is None:
            row = self.model(id=self.DOCUMENT_ID, **self.defaults)
            self.session.add(row)
            self._commit()
        return row

    def get(self):
        record = to_record(self._row())
        record.pop('id', None)
        return record

    def put(self, patch):
        row = self._row()
        for key, value in patch.items():
            if key not in self.model.__table__.columns or key == 'id':
                raise ValueError(f"Unknown field {key!r} for {self.model.__tablename__}")
            setattr(row, key, value)
        self._commit()
        record = to_record(row)
        record.pop('id', None)
        return record

    def _commit(self):
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            logger.error("Store error while writing %s", self.model.__tablename__)
            raise
