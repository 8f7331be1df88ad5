"""Shared pieces of the entity schemas"""

from pydantic import BaseModel, model_validator


class ConnectTarget(BaseModel):
    """Unique reference to an existing row"""
    id: str


class RelationConnect(BaseModel):
    """Relation given as {"connect": {"id": ...}} instead of a foreign key"""
    connect: ConnectTarget


def require_reference(*relations: str):
    """
    Model validator requiring each relation as either its ``<relation>_id``
    field or a ``<relation>`` connect.
    """
    def check(self):
        for relation in relations:
            if getattr(self, f"{relation}_id") is None and getattr(self, relation) is None:
                raise ValueError(f"{relation}_id is a required field")
        return self

    return model_validator(mode="after")(check)
