"""
Database initialization script.

Run this script (or the ``notes-init-db`` command) to create all required
tables in the database.
"""
from notes_database.models import Base

# PUBLIC_INTERFACE
def init_db(bind=None):
    """Initializes the database by creating all tables if they do not exist."""
    if bind is None:
        from notes_database.db import engine
        bind = engine
    Base.metadata.create_all(bind=bind)

# PUBLIC_INTERFACE
def main():
    init_db()
    print("Database tables created successfully.")

if __name__ == "__main__":
    main()
