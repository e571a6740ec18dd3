"""Engine creation and schema setup for the content store"""

from sqlmodel import SQLModel, create_engine

import mdconf.crud.tables  # noqa: F401  registers the tables on SQLModel.metadata


def make_engine(db_url: str):
    connect_args = {"check_same_thread": False} if db_url.startswith("sqlite") else {}
    return create_engine(db_url, echo=False, connect_args=connect_args)


def init_db(engine) -> None:
    SQLModel.metadata.create_all(engine)


def reset_db(engine) -> None:
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
