from __future__ import annotations

from jobgraph.config import Settings, build_sqlalchemy_db_url
from jobgraph.database import mask_db_url


def test_health_endpoints(client) -> None:
    res = client.get("/health/")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"

    res = client.get("/health/db")
    assert res.status_code == 200
    assert res.json()["orm"] == "ok"
    assert res.json()["orm_db_url"].startswith("sqlite")


def test_cors_origins_accept_comma_or_json_lists() -> None:
    assert Settings(CORS_ORIGINS="http://a.test, http://b.test").cors_origins == ["http://a.test", "http://b.test"]
    assert Settings(CORS_ORIGINS='["http://c.test"]').cors_origins == ["http://c.test"]
    assert Settings(CORS_ORIGINS="").cors_origins == []


def test_db_url_falls_back_to_mysql_outside_development() -> None:
    s = Settings(DB_URL=None, environment="production", DB_USER="svc", DB_PASSWORD="pw", DB_HOST="db", DB_NAME="jg")
    assert build_sqlalchemy_db_url(s) == "mysql+pymysql://svc:pw@db:3306/jg?charset=utf8mb4"


def test_masked_url_hides_password() -> None:
    masked = mask_db_url("mysql+pymysql://svc:secret@db:3306/jg")
    assert "secret" not in masked
    assert "***" in masked
