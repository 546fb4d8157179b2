"""In-memory stand-in for the subset of ``google.cloud.firestore.Client`` used by
the document repository: collections, documents, FieldFilter queries,
ordering, limits and ``start_after`` cursors.
"""
import copy
import itertools
import math
import operator
from datetime import datetime, timezone

from google.api_core.exceptions import ServiceUnavailable
from google.cloud import firestore
from google.cloud.firestore_v1.types import StructuredQuery

_OPERATORS = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}

_Unary = StructuredQuery.UnaryFilter.Operator

# FieldFilter turns comparisons against None or NaN into unary operators
_UNARY_OPERATORS = {
    _Unary.IS_NULL: lambda value: value is None,
    _Unary.IS_NOT_NULL: lambda value: value is not None,
    _Unary.IS_NAN: lambda value: isinstance(value, float) and math.isnan(value),
    _Unary.IS_NOT_NAN: lambda value: not (isinstance(value, float) and math.isnan(value)),
}

_ids = itertools.count(1)


def _resolve(data):
    now = datetime.now(timezone.utc)
    return {key: (now if value is firestore.SERVER_TIMESTAMP else copy.deepcopy(value)) for key, value in data.items()}


class FakeSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None

    def get(self, field):
        return (self._data or {}).get(field)


class FakeDocumentReference:
    def __init__(self, client, collection, doc_id):
        self._client = client
        self._collection = collection
        self.id = doc_id

    def _docs(self):
        return self._client.store.setdefault(self._collection, {})

    def get(self):
        self._client.check()
        self._client.reads += 1
        return FakeSnapshot(self, copy.deepcopy(self._docs().get(self.id)))

    def set(self, data, merge=False):
        self._client.check()
        resolved = _resolve(data)
        if merge and self.id in self._docs():
            self._docs()[self.id].update(resolved)
        else:
            self._docs()[self.id] = resolved

    def update(self, data):
        self._client.check()
        if self.id not in self._docs():
            raise KeyError(f"No document to update: {self._collection}/{self.id}")
        self._docs()[self.id].update(_resolve(data))

    def delete(self):
        self._client.check()
        self._docs().pop(self.id, None)


class FakeQuery:
    def __init__(self, client, collection, filters=(), orders=(), limit=None, cursor=None):
        self._client = client
        self._collection = collection
        self._filters = tuple(filters)
        self._orders = tuple(orders)
        self._limit = limit
        self._cursor = cursor

    def _copy(self, **changes):
        state = {
            "filters": self._filters,
            "orders": self._orders,
            "limit": self._limit,
            "cursor": self._cursor,
        }
        state.update(changes)
        return FakeQuery(self._client, self._collection, **state)

    def where(self, filter=None):
        return self._copy(filters=self._filters + (filter,))

    def order_by(self, field_path, direction=firestore.Query.ASCENDING):
        return self._copy(orders=self._orders + ((field_path, direction),))

    def limit(self, count):
        return self._copy(limit=count)

    def start_after(self, snapshot):
        return self._copy(cursor=snapshot.id)

    def _matches(self, data):
        for field_filter in self._filters:
            # Firestore never matches a document that lacks the field
            if field_filter.field_path not in data:
                return False
            value = data[field_filter.field_path]
            if field_filter.op_string in _UNARY_OPERATORS:
                if not _UNARY_OPERATORS[field_filter.op_string](value):
                    return False
                continue
            if field_filter.op_string == "in":
                if value not in field_filter.value:
                    return False
                continue
            if value is None and field_filter.value is not None:
                return False
            if not _OPERATORS[field_filter.op_string](value, field_filter.value):
                return False
        return True

    def stream(self):
        self._client.check()
        docs = self._client.store.setdefault(self._collection, {})
        matched = sorted(
            ((doc_id, data) for doc_id, data in docs.items() if self._matches(data)),
            key=lambda item: item[0],
        )
        for field_path, direction in reversed(self._orders):
            matched.sort(
                key=lambda item: (item[1].get(field_path) is not None, item[1].get(field_path)),
                reverse=direction == firestore.Query.DESCENDING,
            )
        if self._cursor is not None:
            ids = [doc_id for doc_id, _ in matched]
            matched = matched[ids.index(self._cursor) + 1:] if self._cursor in ids else []
        if self._limit is not None:
            matched = matched[:self._limit]
        self._client.queries += 1
        for doc_id, data in matched:
            self._client.reads += 1
            ref = FakeDocumentReference(self._client, self._collection, doc_id)
            yield FakeSnapshot(ref, copy.deepcopy(data))


class FakeCollection(FakeQuery):
    def __init__(self, client, name):
        super().__init__(client, name)

    def document(self, doc_id=None):
        return FakeDocumentReference(self._client, self._collection, doc_id or f"doc{next(_ids):06d}")


class FakeFirestoreClient:
    def __init__(self):
        self.store = {}
        self.queries = 0
        self.reads = 0
        self.available = True

    def check(self):
        if not self.available:
            raise ServiceUnavailable("firestore is unavailable")

    def collection(self, name):
        return FakeCollection(self, name)

    def docs(self, name):
        return self.store.get(name, {})
