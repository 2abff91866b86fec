from sqlmodel import create_engine, SQLModel
import os

DATABASE_FILE = "backup_scheduler.db"


def create_store_engine(data_dir: str = "data", echo: bool = False):
    # Ensure the data directory exists
    os.makedirs(data_dir, exist_ok=True)
    database_url = f"sqlite:///{os.path.join(data_dir, DATABASE_FILE)}"
    return create_engine(database_url, echo=echo, connect_args={"check_same_thread": False})


def create_db_and_tables(engine):
    SQLModel.metadata.create_all(engine)
