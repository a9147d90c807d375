"""Shared plumbing for services that write one cooperative's ledger"""

from contextlib import contextmanager
from datetime import date, datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from coop_ledger.infrastructure.locks import CooperativeLocks
from coop_ledger.utils.date_utils import utcnow
from coop_ledger.utils.ids import new_id

Clock = Callable[[], datetime]
IdFactory = Callable[[str], str]

_DEPTH_KEY = "coop_ledger_write_depth"


class CooperativeService:
    """Binds a session to one cooperative, its write lock, a clock and an id factory"""

    def __init__(
        self,
        db: Session,
        cooperative_id: str,
        locks: CooperativeLocks,
        clock: Optional[Clock] = None,
        id_factory: Optional[IdFactory] = None,
    ):
        self.db = db
        self.cooperative_id = cooperative_id
        self.locks = locks
        self.clock = clock or utcnow
        self.id_factory = id_factory or new_id

    def now(self) -> datetime:
        return self.clock()

    def today(self) -> date:
        return self.clock().date()

    @contextmanager
    def write(self):
        """
        Serialize a write on this cooperative and commit it.

        Nested write() blocks on the same session join the outer one: only the
        outermost block commits, any exception rolls the whole unit back.
        """
        with self.locks.for_cooperative(self.cooperative_id):
            depth = self.db.info.get(_DEPTH_KEY, 0)
            self.db.info[_DEPTH_KEY] = depth + 1
            try:
                yield
                if depth == 0:
                    self.db.commit()
            except Exception:
                if depth == 0:
                    self.db.rollback()
                raise
            finally:
                self.db.info[_DEPTH_KEY] = depth
