"""Active-record style models over ``QueryBuilder``.

A model is an explicit attribute map for one row of one table. There
is no dynamic attribute access and no relationships; read and write
values with ``get()`` and ``set()``::

    class User(Model):
        table = "users"
        fillable = ("name", "email")

    user = User.create(db, {"name": "Ada", "email": "ada@example.com"})
    user.set("name", "Ada L.").save(db)
    same = User.find(db, user.key)
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, ClassVar, Self

from lightcore.data.errors import DataError

if TYPE_CHECKING:
    from lightcore.data.database import Database
    from lightcore.data.query import QueryBuilder


class Model:
    """Base class for table-backed models.

    Class attributes:
        table: table name; defaults to the lowercased class name plus ``s``.
        primary_key: primary key column, ``id`` by default.
        fillable: columns ``fill()`` accepts; empty means all of them.
    """

    table: ClassVar[str] = ""
    primary_key: ClassVar[str] = "id"
    fillable: ClassVar[tuple[str, ...]] = ()

    __slots__ = ("_attributes", "_exists")

    def __init__(self, attributes: Mapping[str, Any] | None = None) -> None:
        self._attributes: dict[str, Any] = {}
        self._exists = False
        if attributes:
            self.fill(attributes)

    @classmethod
    def table_name(cls) -> str:
        return cls.table or f"{cls.__name__.lower()}s"

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Self:
        """Wrap a fetched row. Fillable rules don't apply to stored data."""
        instance = cls()
        instance._attributes = dict(row)
        instance._exists = True
        return instance

    # -- Attributes --

    def fill(self, attributes: Mapping[str, Any]) -> Self:
        """Assign the fillable subset of *attributes*."""
        for key, value in attributes.items():
            if not self.fillable or key in self.fillable:
                self._attributes[key] = value
        return self

    def get(self, key: str, default: Any = None) -> Any:
        return self._attributes.get(key, default)

    def set(self, key: str, value: Any) -> Self:
        self._attributes[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        return dict(self._attributes)

    @property
    def key(self) -> Any:
        """The primary key value, or ``None`` before the row is stored."""
        return self._attributes.get(self.primary_key)

    @property
    def exists(self) -> bool:
        """True once the model has been stored or loaded."""
        return self._exists

    # -- Class-level queries --

    @classmethod
    def query(cls, db: Database) -> QueryBuilder:
        return db.table(cls.table_name())

    @classmethod
    def find(cls, db: Database, key: Any) -> Self | None:
        row = cls.query(db).where(cls.primary_key, "=", key).first()
        return None if row is None else cls.from_row(row)

    @classmethod
    def all(cls, db: Database) -> list[Self]:
        return [cls.from_row(row) for row in cls.query(db).get()]

    @classmethod
    def create(cls, db: Database, attributes: Mapping[str, Any]) -> Self:
        """Fill, insert and return a new stored model.

        Raises ``DataError`` when the insert affects no row.
        """
        instance = cls(attributes)
        if not instance.save(db):
            msg = f"Error while adding a new row in the {cls.table_name()} table"
            raise DataError(msg)
        return instance

    # -- Instance persistence --

    def save(self, db: Database) -> bool:
        """INSERT a new model or UPDATE a stored one by primary key."""
        if self._exists:
            values = {k: v for k, v in self._attributes.items() if k != self.primary_key}
            if not values:
                return False
            return self._keyed(db).update(values)

        sql, params = self.query(db).compile_insert(self._attributes)
        affected, row_id = db.connection.execute_insert(sql, params)
        if not affected:
            return False
        if self.key is None:
            self._attributes[self.primary_key] = row_id
        self._exists = True
        return True

    def update(self, db: Database, attributes: Mapping[str, Any]) -> bool:
        """Fill *attributes* and write them to the stored row."""
        if self.key is None or not attributes:
            return False
        self.fill(attributes)
        values = {k: v for k, v in attributes.items() if not self.fillable or k in self.fillable}
        if not values:
            return False
        return self._keyed(db).update(values)

    def delete(self, db: Database) -> bool:
        if self.key is None:
            return False
        deleted = self._keyed(db).delete()
        if deleted:
            self._exists = False
        return deleted

    def fresh(self, db: Database) -> Self | None:
        """Reload this row from the database as a new instance."""
        if self.key is None:
            return None
        row = self._keyed(db).first()
        return None if row is None else self.from_row(row)

    def _keyed(self, db: Database) -> QueryBuilder:
        return self.query(db).where(self.primary_key, "=", self.key)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._attributes!r}>"
