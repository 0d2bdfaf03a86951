from contextlib import contextmanager

from ..extensions import db


@contextmanager
def unit_of_work():
    """Commit everything written inside the block, or nothing at all."""
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
