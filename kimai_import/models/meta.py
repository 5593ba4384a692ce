"""Shared columns and helpers for named extension fields ("meta fields")."""

from sqlalchemy import Column, Integer, String, Text, Boolean


class MetaFieldColumns:
    """Columns every *_meta table has next to its owner foreign key."""

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    value = Column(Text, nullable=True)
    visible = Column(Boolean, default=False, nullable=False)

    def __repr__(self):
        return f"<{type(self).__name__}(name='{self.name}', value='{self.value}')>"


class HasMetaFields:
    """Accessors for entities with a ``meta_fields`` relationship and a ``meta_model`` class."""

    meta_model = None

    def get_meta_field(self, name: str):
        for meta in self.meta_fields:
            if meta.name == name:
                return meta
        return None

    def get_meta_value(self, name: str):
        meta = self.get_meta_field(name)
        return meta.value if meta is not None else None

    def set_meta_field(self, name: str, value, visible: bool = False):
        meta = self.get_meta_field(name)
        if meta is None:
            meta = self.meta_model(name=name)
            self.meta_fields.append(meta)
        meta.value = None if value is None else str(value)
        meta.visible = visible
        return meta
