import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tcapi.database.connection import engine
from tcapi.models import Base


def init_db():
    """Create every table that does not exist yet"""
    try:
        Base.metadata.create_all(bind=engine)
        print(f"Database initialized with tables: {', '.join(sorted(Base.metadata.tables))}")
    except Exception as e:
        print(f"Database initialization failed: {str(e)}")
        raise


if __name__ == "__main__":
    init_db()
