"""
Initialize the database schema and register the bundled theme packages
"""
import sys
import os

# Add parent directory to path to import backend modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core import config
from core.database import Base, SessionLocal, init_db
from core.errors import EngineError
from services.themes import register_theme
from utils.theme_package import ThemePackageReader


def init_database():
    """Create all tables, then upsert a themes row per package directory"""
    print("Creating tables...")

    try:
        init_db()
        print("✓ Tables created successfully!")
        for name in sorted(Base.metadata.tables):
            print(f"  - {name}")
    except Exception as e:
        print(f"✗ Error creating tables: {e}")
        sys.exit(1)

    reader = ThemePackageReader()
    db = SessionLocal()
    try:
        for code in sorted(os.listdir(config.THEMES_DIR)):
            try:
                if not reader.has_package(code):
                    continue
                theme = register_theme(db, code, reader)
                print(f"✓ Registered theme {theme.code} ({theme.version})")
            except EngineError as e:
                print(f"✗ Skipped theme {code}: {e.message}")
    finally:
        db.close()


if __name__ == "__main__":
    init_database()
