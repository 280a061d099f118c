"""In-memory stand-ins for the repositories and the database session.

Services build their repositories from the session they are given; tests swap
them for these fakes with ``wire_*`` after construction. ``FakeSession``
snapshots the store on commit and restores it on rollback so transaction
behaviour can be asserted.
"""

import copy
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID, uuid4

from sqlalchemy.exc import IntegrityError

from app.models.lifecycle import ACTIVE_STATUSES, AnalysisStatus, DocumentStatus, MemberRole

# Close to the wall clock so freshly seeded active analyses are never stale.
EPOCH = datetime.now(timezone.utc) - timedelta(minutes=1)


class FakeStore:
    """Rows keyed by ID, plus a log of row locks in acquisition order."""

    def __init__(self):
        self.practices: Dict[UUID, SimpleNamespace] = {}
        self.members: Dict[UUID, SimpleNamespace] = {}
        self.documents: Dict[UUID, SimpleNamespace] = {}
        self.analyses: Dict[UUID, SimpleNamespace] = {}
        self.locks: List[Tuple[str, UUID]] = []
        self._clock = 0

    def now(self) -> datetime:
        self._clock += 1
        return EPOCH + timedelta(seconds=self._clock)

    def state(self) -> Dict[str, Any]:
        return copy.deepcopy(
            {
                "practices": self.practices,
                "members": self.members,
                "documents": self.documents,
                "analyses": self.analyses,
            }
        )

    def restore(self, state: Dict[str, Any]) -> None:
        state = copy.deepcopy(state)
        self.practices = state["practices"]
        self.members = state["members"]
        self.documents = state["documents"]
        self.analyses = state["analyses"]

    # Seeding helpers

    def add_practice(self, owner_id: str, name: str = "Test Practice") -> SimpleNamespace:
        now = self.now()
        practice = SimpleNamespace(id=uuid4(), name=name, owner_id=owner_id, created_at=now, updated_at=now)
        self.practices[practice.id] = practice
        return practice

    def add_member(self, practice_id: UUID, user_id: str, role: str = MemberRole.MEMBER.value) -> SimpleNamespace:
        member = SimpleNamespace(
            id=uuid4(), practice_id=practice_id, user_id=user_id, role=role, created_at=self.now()
        )
        self.members[member.id] = member
        return member

    def add_document(
        self,
        practice_id: UUID,
        uploaded_by: str = "uploader",
        status: str = DocumentStatus.UPLOADED.value,
        content_type: str = "application/pdf",
        filename: str = "plan.pdf",
    ) -> SimpleNamespace:
        now = self.now()
        document = SimpleNamespace(
            id=uuid4(),
            practice_id=practice_id,
            storage_ref=f"{uploaded_by}/{uuid4().hex}",
            filename=filename,
            content_type=content_type,
            size_bytes=2048,
            status=status,
            uploaded_by=uploaded_by,
            created_at=now,
            updated_at=now,
        )
        self.documents[document.id] = document
        return document

    def add_analysis(
        self,
        document: SimpleNamespace,
        status: str = AnalysisStatus.QUEUED.value,
        report: Optional[dict] = None,
        error_message: Optional[str] = None,
    ) -> SimpleNamespace:
        now = self.now()
        analysis = SimpleNamespace(
            id=uuid4(),
            document_id=document.id,
            practice_id=document.practice_id,
            status=status,
            report=report,
            error_message=error_message,
            workflow_id=None,
            created_by=document.uploaded_by,
            created_at=now,
            updated_at=now,
        )
        self.analyses[analysis.id] = analysis
        return analysis


class FakeSession:
    """Session whose transaction boundaries act on a FakeStore."""

    def __init__(self, store: FakeStore):
        self.store = store
        self.commits = 0
        self.rollbacks = 0
        self._committed = store.state()

    async def commit(self) -> None:
        self.commits += 1
        self._committed = self.store.state()

    async def rollback(self) -> None:
        self.rollbacks += 1
        self.store.restore(self._committed)

    def mark_committed(self) -> None:
        """Treat the current store contents as committed by someone else."""
        self._committed = self.store.state()

    async def close(self) -> None:
        pass

    async def __aenter__(self) -> "FakeSession":
        return self

    async def __aexit__(self, *exc_info) -> bool:
        return False


class FakeSessionFactory:
    """Callable yielding FakeSessions over one store, like async_sessionmaker."""

    def __init__(self, store: FakeStore):
        self.store = store
        self.sessions: List[FakeSession] = []

    def __call__(self) -> FakeSession:
        session = FakeSession(self.store)
        self.sessions.append(session)
        return session


def _newest_first(rows: List[SimpleNamespace]) -> List[SimpleNamespace]:
    return sorted(rows, key=lambda row: (row.created_at, str(row.id)), reverse=True)


class FakePracticeRepository:
    def __init__(self, store: FakeStore):
        self.store = store

    async def get_by_id(self, id: UUID, for_update: bool = False) -> Optional[SimpleNamespace]:
        return self.store.practices.get(id)

    async def create_practice(self, name: str, owner_id: str) -> SimpleNamespace:
        return self.store.add_practice(owner_id=owner_id, name=name)


class FakePracticeMemberRepository:
    def __init__(self, store: FakeStore):
        self.store = store

    async def get_by_user(self, user_id: str) -> Optional[SimpleNamespace]:
        return next((m for m in self.store.members.values() if m.user_id == user_id), None)

    async def get_by_practice_and_user(self, practice_id: UUID, user_id: str) -> Optional[SimpleNamespace]:
        return next(
            (m for m in self.store.members.values() if m.practice_id == practice_id and m.user_id == user_id),
            None,
        )

    async def create_membership(
        self,
        practice_id: UUID,
        user_id: str,
        role: MemberRole = MemberRole.MEMBER,
    ) -> SimpleNamespace:
        if await self.get_by_user(user_id) is not None:
            raise IntegrityError("INSERT INTO practice_members", {}, Exception("uq_practice_members_user_id"))
        return self.store.add_member(practice_id, user_id, MemberRole(role).value)


class FakeDocumentRepository:
    def __init__(self, store: FakeStore):
        self.store = store

    async def get_by_id(self, id: UUID, for_update: bool = False) -> Optional[SimpleNamespace]:
        document = self.store.documents.get(id)
        if for_update and document is not None:
            self.store.locks.append(("document", id))
        return document

    async def create_document(self, practice_id: UUID, storage_ref: str, filename: str,
                              content_type: str, size_bytes: int, uploaded_by: str) -> SimpleNamespace:
        document = self.store.add_document(
            practice_id,
            uploaded_by=uploaded_by,
            content_type=content_type,
            filename=filename,
        )
        document.storage_ref = storage_ref
        document.size_bytes = size_bytes
        return document

    async def list_by_practice(self, practice_id: UUID) -> List[SimpleNamespace]:
        return _newest_first([d for d in self.store.documents.values() if d.practice_id == practice_id])

    async def update_status(self, document_id: UUID, status: str) -> bool:
        document = self.store.documents.get(document_id)
        if document is None:
            return False
        document.status = DocumentStatus(status).value
        document.updated_at = self.store.now()
        return True

    async def delete(self, id: UUID) -> bool:
        return self.store.documents.pop(id, None) is not None


class FakeAnalysisRepository:
    def __init__(self, store: FakeStore):
        self.store = store

    async def get_by_id(self, id: UUID, for_update: bool = False) -> Optional[SimpleNamespace]:
        analysis = self.store.analyses.get(id)
        if for_update and analysis is not None:
            self.store.locks.append(("analysis", id))
        return analysis

    async def create_analysis(self, document_id: UUID, practice_id: UUID, created_by: str) -> SimpleNamespace:
        analysis = self.store.add_analysis(self.store.documents[document_id])
        analysis.created_by = created_by
        return analysis

    async def list_by_document(self, document_id: UUID) -> List[SimpleNamespace]:
        return _newest_first([a for a in self.store.analyses.values() if a.document_id == document_id])

    async def get_latest_for_document(self, document_id: UUID) -> Optional[SimpleNamespace]:
        analyses = await self.list_by_document(document_id)
        return analyses[0] if analyses else None

    async def get_active_for_document(self, document_id: UUID) -> Optional[SimpleNamespace]:
        active = {s.value for s in ACTIVE_STATUSES}
        return next((a for a in await self.list_by_document(document_id) if a.status in active), None)

    async def apply_transition(self, analysis: SimpleNamespace, status: str,
                               fields: Optional[Dict[str, Any]] = None) -> SimpleNamespace:
        analysis.status = AnalysisStatus(status).value
        for key, value in (fields or {}).items():
            setattr(analysis, key, value)
        analysis.updated_at = self.store.now()
        return analysis

    async def delete_by_document(self, document_id: UUID) -> int:
        doomed = [a.id for a in self.store.analyses.values() if a.document_id == document_id]
        for analysis_id in doomed:
            del self.store.analyses[analysis_id]
        return len(doomed)


def wire_practice_service(service, store: FakeStore):
    service.practice_repo = FakePracticeRepository(store)
    service.member_repo = FakePracticeMemberRepository(store)
    service.access.member_repo = service.member_repo
    return service


def wire_document_service(service, store: FakeStore):
    service.doc_repo = FakeDocumentRepository(store)
    service.analysis_repo = FakeAnalysisRepository(store)
    service.access.member_repo = FakePracticeMemberRepository(store)
    return service


def wire_analysis_service(service, store: FakeStore):
    service.doc_repo = FakeDocumentRepository(store)
    service.analysis_repo = FakeAnalysisRepository(store)
    service.access.member_repo = FakePracticeMemberRepository(store)
    return service
