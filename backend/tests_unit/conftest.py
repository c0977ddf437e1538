"""Environment for pure-function tests (no database, no app)."""
import os

os.environ.setdefault("JWT_SECRET", "test_jwt_secret")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DB_PASSWORD", "test")
