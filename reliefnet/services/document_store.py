"""Collection-style access to reports, donations and users.

Routes talk to the database through these helpers so that read failures
degrade to an empty result (logged) instead of an error page, while write
failures roll back and propagate to the caller.
"""

import logging
from reliefnet import db
from reliefnet.models import Report, Donation, User

logger = logging.getLogger(__name__)

COLLECTIONS = {
    'reports': Report,
    'donations': Donation,
    'users': User,
}


class UnknownCollectionError(KeyError):
    pass


def _model(collection):
    try:
        return COLLECTIONS[collection]
    except KeyError:
        raise UnknownCollectionError(collection)


def query(collection, filters=None, order_by=None, descending=False, limit=None):
    """Return records of a collection matching equality filters.

    Connectivity or permission problems are logged and an empty list is
    returned rather than raised.
    """
    model = _model(collection)
    try:
        q = model.query
        if filters:
            q = q.filter_by(**filters)
        if order_by:
            column = getattr(model, order_by)
            q = q.order_by(column.desc() if descending else column.asc())
        if limit:
            q = q.limit(limit)
        return q.all()
    except Exception as e:
        logger.error(f"Document store error (query {collection}): {e}")
        db.session.rollback()
        return []


def get(collection, record_id):
    """Fetch one record by id, or None (also None on read errors)."""
    model = _model(collection)
    try:
        return db.session.get(model, record_id)
    except Exception as e:
        logger.error(f"Document store error (get {collection}/{record_id}): {e}")
        db.session.rollback()
        return None


def upsert(collection, record_id, record):
    """Create or update a record from a dict of column values.

    Unknown keys are ignored. Errors roll back and propagate.
    """
    model = _model(collection)
    columns = {c.name for c in model.__table__.columns} - {'id'}
    values = {k: v for k, v in record.items() if k in columns}

    try:
        instance = db.session.get(model, record_id) if record_id is not None else None
        if instance is None:
            instance = model(**values)
            if record_id is not None:
                instance.id = record_id
            db.session.add(instance)
        else:
            for key, value in values.items():
                setattr(instance, key, value)
        db.session.commit()
        return instance
    except Exception:
        db.session.rollback()
        raise


def increment(collection, record_id, field, amount=1):
    """Add amount to a numeric column in a single UPDATE.

    Concurrent increments all land. Returns the updated record, or None if
    it does not exist. Errors roll back and propagate.
    """
    model = _model(collection)
    column = getattr(model, field)
    try:
        updated = model.query.filter_by(id=record_id).update(
            {column: column + amount},
            synchronize_session=False,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    if not updated:
        return None
    return db.session.get(model, record_id, populate_existing=True)


def delete(collection, record_id):
    """Delete a record. Returns False if it did not exist."""
    model = _model(collection)
    try:
        instance = db.session.get(model, record_id)
        if instance is None:
            return False
        db.session.delete(instance)
        db.session.commit()
        return True
    except Exception:
        db.session.rollback()
        raise
