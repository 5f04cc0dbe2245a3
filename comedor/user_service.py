from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from werkzeug.security import check_password_hash, generate_password_hash

from .branch_service import BranchService
from .documents import BRANCHES, USERS, DocumentStore
from .errors import AuthError, BusinessRuleError, NotFoundError, ValidationError
from .roles import DEFAULT_PERMISSIONS, CanonicalRole, to_canonical
from .validators import PASSWORD_RULES_MESSAGE, clean_text, is_strong_password, is_valid_email

log = logging.getLogger(__name__)


@dataclass
class User:
    uid: str
    name: str
    email: str
    role: str
    branch_id: str | None = None
    permissions: list[str] = field(default_factory=list)
    active: bool = True
    password_hash: str | None = None
    created_at: str | None = None
    created_by: str | None = None
    last_login: str | None = None

    @property
    def canonical_role(self) -> CanonicalRole | None:
        return to_canonical(self.role)

    @classmethod
    def from_doc(cls, doc_id: str, data: dict[str, Any]) -> User:
        return cls(
            uid=doc_id,
            name=str(data.get("name") or ""),
            email=str(data.get("email") or ""),
            role=str(data.get("role") or ""),
            branch_id=data.get("branchId") or data.get("branch"),
            permissions=list(data.get("permissions") or []),
            active=bool(data.get("active", True)),
            password_hash=data.get("passwordHash"),
            created_at=data.get("createdAt"),
            created_by=data.get("createdBy"),
            last_login=data.get("lastLogin"),
        )

    def to_doc(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "branchId": self.branch_id,
            "permissions": list(self.permissions),
            "active": self.active,
            "passwordHash": self.password_hash,
            "createdAt": self.created_at,
            "createdBy": self.created_by,
            "lastLogin": self.last_login,
        }

    def to_dict(self) -> dict[str, Any]:
        """Public representation (no password hash)."""
        data = self.to_doc()
        data.pop("passwordHash")
        return {"uid": self.uid, **data}


def _validate(name: str, email: str, role: str | None, branch_id: str | None) -> CanonicalRole:
    errors: list[dict[str, str]] = []
    if not name:
        errors.append({"field": "name", "message": "El nombre es requerido."})
    if not is_valid_email(email):
        errors.append({"field": "email", "message": "Por favor, ingresa un correo electrónico válido"})
    canonical = to_canonical(role)
    if canonical is None:
        errors.append({"field": "role", "message": f"Rol inválido: {role}"})
    elif canonical == "coordinator" and not branch_id:
        errors.append({"field": "branch_id", "message": "Los coordinadores requieren una sucursal asignada."})
    if errors:
        raise ValidationError(errors[0]["message"], errors=errors)
    assert canonical is not None
    return canonical


class UserService:
    def __init__(self, store: DocumentStore):
        self.store = store
        self.branches = BranchService(store)

    def get(self, uid: str) -> User | None:
        doc = self.store.get(USERS, uid)
        return User.from_doc(doc.id, doc.data) if doc else None

    def require(self, uid: str) -> User:
        user = self.get(uid)
        if user is None:
            raise NotFoundError(f"user {uid} not found", user_message="El usuario no existe.")
        return user

    def find_by_email(self, email: str) -> User | None:
        docs = self.store.query(USERS, where=[("email", "==", clean_text(email).lower())], limit=1)
        return User.from_doc(docs[0].id, docs[0].data) if docs else None

    def list(self, role: str | None = None) -> list[User]:
        where = []
        if role:
            where.append(("role", "==", to_canonical(role) or role))
        docs = self.store.query(USERS, where=where, order_by="name")
        return [User.from_doc(d.id, d.data) for d in docs]

    def coordinators(self) -> list[User]:
        return self.list(role="coordinator")

    def create(
        self,
        name: str,
        email: str,
        password: str,
        role: str,
        branch_id: str | None = None,
        created_by: str | None = None,
        uid: str | None = None,
    ) -> User:
        name = clean_text(name)
        email = clean_text(email).lower()
        canonical = _validate(name, email, role, branch_id)
        if not is_strong_password(password):
            raise ValidationError(
                PASSWORD_RULES_MESSAGE, errors=[{"field": "password", "message": PASSWORD_RULES_MESSAGE}]
            )
        if self.find_by_email(email) is not None:
            raise BusinessRuleError("email already registered", code="auth/email-already-in-use")
        if branch_id:
            self.branches.require(branch_id)
        user = User(
            uid=uid or uuid.uuid4().hex,
            name=name,
            email=email,
            role=canonical,
            branch_id=branch_id,
            permissions=list(DEFAULT_PERMISSIONS[canonical]),
            password_hash=generate_password_hash(password),
            created_at=datetime.now(UTC).isoformat(),
            created_by=created_by,
        )
        with self.store.batch() as batch:
            batch.set(USERS, user.uid, user.to_doc())
            if canonical == "coordinator" and branch_id:
                batch.update(BRANCHES, branch_id, {"coordinatorId": user.uid})
        log.info("user created uid=%s role=%s", user.uid, canonical)
        return user

    def update(self, uid: str, changes: dict[str, Any]) -> User:
        user = self.require(uid)
        previous_branch = user.branch_id
        previous_role = user.canonical_role
        if "name" in changes:
            user.name = clean_text(changes["name"])
        if "role" in changes:
            user.role = to_canonical(changes["role"]) or str(changes["role"])
        if "branch_id" in changes:
            user.branch_id = changes["branch_id"] or None
        if "active" in changes:
            user.active = bool(changes["active"])
        if "permissions" in changes and isinstance(changes["permissions"], list):
            user.permissions = [str(p) for p in changes["permissions"]]
        canonical = _validate(user.name, user.email, user.role, user.branch_id)
        if "role" in changes and canonical != previous_role and "permissions" not in changes:
            user.permissions = list(DEFAULT_PERMISSIONS[canonical])
        if user.branch_id and user.branch_id != previous_branch:
            self.branches.require(user.branch_id)
        with self.store.batch() as batch:
            batch.set(USERS, uid, user.to_doc())
            self._reassign_coordinator(batch, user, previous_role, previous_branch)
        return user

    def _reassign_coordinator(self, batch, user: User, previous_role, previous_branch) -> None:
        was_coordinator = previous_role == "coordinator" and previous_branch
        is_coordinator = user.canonical_role == "coordinator" and user.branch_id
        if was_coordinator and (not is_coordinator or previous_branch != user.branch_id):
            old = self.branches.get(previous_branch)
            if old is not None and old.coordinator_id == user.uid:
                batch.update(BRANCHES, previous_branch, {"coordinatorId": None})
        if is_coordinator and (not was_coordinator or previous_branch != user.branch_id):
            batch.update(BRANCHES, user.branch_id, {"coordinatorId": user.uid})

    def delete(self, uid: str) -> None:
        user = self.require(uid)
        with self.store.batch() as batch:
            batch.delete(USERS, uid)
            if user.branch_id:
                branch = self.branches.get(user.branch_id)
                if branch is not None and branch.coordinator_id == uid:
                    batch.update(BRANCHES, user.branch_id, {"coordinatorId": None})
        log.info("user deleted uid=%s", uid)

    def reset_password(self, uid: str, new_password: str) -> None:
        self.require(uid)
        if not is_strong_password(new_password):
            raise ValidationError(
                PASSWORD_RULES_MESSAGE, errors=[{"field": "password", "message": PASSWORD_RULES_MESSAGE}]
            )
        self.store.update(USERS, uid, {"passwordHash": generate_password_hash(new_password)})
        log.info("password reset uid=%s", uid)

    def verify_credentials(self, email: str, password: str) -> User:
        email = clean_text(email).lower()
        if not is_valid_email(email):
            raise AuthError("invalid email", code="auth/invalid-email")
        user = self.find_by_email(email)
        if user is None:
            raise AuthError("unknown user", code="auth/user-not-found")
        if not user.password_hash or not check_password_hash(user.password_hash, password):
            raise AuthError("bad password", code="auth/wrong-password")
        if not user.active:
            raise AuthError("user disabled", code="auth/user-disabled")
        return user

    def record_login(self, uid: str) -> None:
        self.store.update(USERS, uid, {"lastLogin": datetime.now(UTC).isoformat()})


__all__ = ["User", "UserService"]
