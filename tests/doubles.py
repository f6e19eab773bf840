"""
In-memory stand-ins for the pymongo async API and the Razorpay SDK.

``InMemoryDatabase`` implements the subset of ``AsyncDatabase`` /
``AsyncCollection`` the repositories use (equality, ``$or``, ``$in``,
range operators and case-insensitive ``$regex`` filters; ``$set``,
``$unset``, ``$inc`` and ``$setOnInsert`` updates; unique indexes), so the
application can be served end to end without a MongoDB server.
"""

import copy
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from api.src.database import Database

_MISSING = object()


def _get(document: Dict[str, Any], path: str) -> Any:
    value: Any = document
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


def _set(document: Dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    target = document
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = value


def _unset(document: Dict[str, Any], path: str) -> None:
    parts = path.split(".")
    target = document
    for part in parts[:-1]:
        target = target.get(part)
        if not isinstance(target, dict):
            return
    target.pop(parts[-1], None)


def _candidates(value: Any) -> List[Any]:
    # a filter on an array field matches any element
    if value is _MISSING:
        return [None]
    if isinstance(value, list):
        return [value, *value]
    return [value]


def _match_operator(value: Any, operator: str, operand: Any, condition: Dict[str, Any]) -> bool:
    candidates = _candidates(value)
    if operator == "$in":
        return any(candidate in operand for candidate in candidates)
    if operator == "$regex":
        flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
        pattern = re.compile(operand, flags)
        return any(isinstance(c, str) and pattern.search(c) for c in candidates)
    if operator == "$options":
        return True
    present = [c for c in candidates if c is not None]
    if operator == "$lt":
        return any(c < operand for c in present)
    if operator == "$lte":
        return any(c <= operand for c in present)
    if operator == "$gt":
        return any(c > operand for c in present)
    if operator == "$gte":
        return any(c >= operand for c in present)
    raise NotImplementedError(operator)


def matches(document: Dict[str, Any], query: Dict[str, Any]) -> bool:
    """Evaluate a filter document against a stored document."""
    for key, condition in query.items():
        if key == "$or":
            if not any(matches(document, clause) for clause in condition):
                return False
            continue
        value = _get(document, key)
        if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
            if not all(_match_operator(value, op, operand, condition) for op, operand in condition.items()):
                return False
        elif condition not in _candidates(value):
            return False
    return True


def apply_update(document: Dict[str, Any], update: Dict[str, Any], inserting: bool = False) -> None:
    for path, value in update.get("$set", {}).items():
        _set(document, path, copy.deepcopy(value))
    for path in update.get("$unset", {}):
        _unset(document, path)
    for path, amount in update.get("$inc", {}).items():
        current = _get(document, path)
        _set(document, path, (0 if current is _MISSING else current) + amount)
    if inserting:
        for path, value in update.get("$setOnInsert", {}).items():
            _set(document, path, copy.deepcopy(value))


@dataclass
class InsertOneResult:
    inserted_id: ObjectId


@dataclass
class UpdateResult:
    matched_count: int
    modified_count: int


@dataclass
class DeleteResult:
    deleted_count: int


class InMemoryCursor:
    """Chainable cursor over a snapshot of matching documents."""

    def __init__(self, documents: List[Dict[str, Any]]):
        self._documents = documents
        self._skip = 0
        self._limit = 0

    def sort(self, key, direction: Optional[int] = None) -> "InMemoryCursor":
        keys: List[Tuple[str, int]] = [(key, direction or 1)] if isinstance(key, str) else list(key)
        for field, order in reversed(keys):
            self._documents.sort(
                key=lambda doc: (_get(doc, field) is _MISSING, _get(doc, field) if _get(doc, field) is not _MISSING else 0),
                reverse=order < 0,
            )
        return self

    def skip(self, count: int) -> "InMemoryCursor":
        self._skip = count
        return self

    def limit(self, count: int) -> "InMemoryCursor":
        self._limit = count
        return self

    def _window(self) -> List[Dict[str, Any]]:
        documents = self._documents[self._skip:]
        if self._limit:
            documents = documents[: self._limit]
        return documents

    async def to_list(self, length: Optional[int] = None) -> List[Dict[str, Any]]:
        return self._window()

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for document in self._window():
            yield document


class InMemoryCollection:
    """Async collection holding documents in a list."""

    def __init__(self, name: str):
        self.name = name
        self.documents: List[Dict[str, Any]] = []
        self.unique_indexes: List[Tuple[str, ...]] = []

    async def create_index(self, keys, unique: bool = False, **kwargs: Any) -> str:
        fields = tuple(field for field, _ in keys)
        if unique and fields not in self.unique_indexes:
            self.unique_indexes.append(fields)
        return "_".join(fields)

    def _check_unique(self, candidate: Dict[str, Any]) -> None:
        for fields in self.unique_indexes:
            key = {field: _get(candidate, field) for field in fields}
            for existing in self.documents:
                if existing["_id"] == candidate["_id"]:
                    continue
                if all(_get(existing, field) == value for field, value in key.items()):
                    raise DuplicateKeyError(
                        f"E11000 duplicate key error collection: {self.name}",
                        code=11000,
                        details={"keyValue": key},
                    )

    def _matching(self, query: Dict[str, Any]) -> Iterator[Dict[str, Any]]:
        return (document for document in self.documents if matches(document, query))

    async def insert_one(self, document: Dict[str, Any]) -> InsertOneResult:
        stored = copy.deepcopy(document)
        stored.setdefault("_id", ObjectId())
        self._check_unique(stored)
        self.documents.append(stored)
        return InsertOneResult(stored["_id"])

    async def find_one(self, query: Dict[str, Any], projection: Optional[Dict[str, Any]] = None):
        found = next(self._matching(query), None)
        return copy.deepcopy(found) if found is not None else None

    def find(self, query: Optional[Dict[str, Any]] = None) -> InMemoryCursor:
        return InMemoryCursor([copy.deepcopy(doc) for doc in self._matching(query or {})])

    async def count_documents(self, query: Dict[str, Any]) -> int:
        return sum(1 for _ in self._matching(query))

    async def find_one_and_update(
        self,
        query: Dict[str, Any],
        update: Dict[str, Any],
        upsert: bool = False,
        return_document: bool = ReturnDocument.BEFORE,
    ):
        found = next(self._matching(query), None)
        if found is None:
            if not upsert:
                return None
            found = {
                "_id": ObjectId(),
                **{k: v for k, v in query.items() if not k.startswith("$") and not isinstance(v, dict)},
            }
            apply_update(found, update, inserting=True)
            self._check_unique(found)
            self.documents.append(found)
            return copy.deepcopy(found) if return_document == ReturnDocument.AFTER else None

        before = copy.deepcopy(found)
        candidate = copy.deepcopy(found)
        apply_update(candidate, update)
        self._check_unique(candidate)
        found.clear()
        found.update(candidate)
        return copy.deepcopy(found) if return_document == ReturnDocument.AFTER else before

    async def update_one(self, query: Dict[str, Any], update: Dict[str, Any]) -> UpdateResult:
        found = next(self._matching(query), None)
        if found is None:
            return UpdateResult(0, 0)
        apply_update(found, update)
        return UpdateResult(1, 1)

    async def update_many(self, query: Dict[str, Any], update: Dict[str, Any]) -> UpdateResult:
        targets = list(self._matching(query))
        for document in targets:
            apply_update(document, update)
        return UpdateResult(len(targets), len(targets))

    async def find_one_and_delete(self, query: Dict[str, Any]):
        found = next(self._matching(query), None)
        if found is not None:
            self.documents.remove(found)
        return found

    async def delete_one(self, query: Dict[str, Any]) -> DeleteResult:
        found = next(self._matching(query), None)
        if found is None:
            return DeleteResult(0)
        self.documents.remove(found)
        return DeleteResult(1)


class InMemoryDatabase:
    """Database handle creating collections on first access."""

    def __init__(self, name: str = "booknview_test"):
        self.name = name
        self.collections: Dict[str, InMemoryCollection] = {}
        self.reachable = True

    def __getitem__(self, name: str) -> InMemoryCollection:
        if name not in self.collections:
            self.collections[name] = InMemoryCollection(name)
        return self.collections[name]

    async def command(self, name: str) -> Dict[str, Any]:
        if not self.reachable:
            raise ConnectionError("server unreachable")
        return {"ok": 1}


def in_memory_database() -> Database:
    """A repository bundle backed by ``InMemoryDatabase``."""
    return Database(InMemoryDatabase())


class FakeOrders:
    def __init__(self, outcome: Any):
        self.outcome = outcome
        self.created: List[Dict[str, Any]] = []

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        self.created.append(data)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        if callable(self.outcome):
            return self.outcome(data)
        return dict(self.outcome)


class FakeRazorpay:
    """Stands in for ``razorpay.Client``; ``order.create`` returns ``outcome`` or raises it."""

    def __init__(self, outcome: Any):
        self.order = FakeOrders(outcome)
