"""Management CLI and token tests."""

import asyncio
from datetime import timedelta

import pytest

from conftest import ADMIN, OUTSIDER
from producttrace.auth.jwt import create_access_token, decode_token
from producttrace.cli import main
from producttrace.database import build_engine, build_sessionmaker
from producttrace.services.ledger import SupplyChainLedger


async def _administrator(url: str) -> str | None:
    engine = build_engine(url)
    try:
        return await SupplyChainLedger(build_sessionmaker(engine)).administrator()
    finally:
        await engine.dispose()


@pytest.mark.unit
class TestTokens:

    def test_token_carries_identity(self):
        payload = decode_token(create_access_token(ADMIN))
        assert payload["sub"] == ADMIN
        assert payload["type"] == "access"

    def test_expired_token_decodes_empty(self):
        token = create_access_token(ADMIN, expires_delta=timedelta(minutes=-1))
        assert decode_token(token) == {}

    def test_issue_token_command(self, capsys):
        assert main(["issue-token", OUTSIDER, "--minutes", "5"]) == 0

        token = capsys.readouterr().out.strip()
        assert decode_token(token)["sub"] == OUTSIDER


@pytest.mark.integration
class TestInitDb:

    def test_init_db_bootstraps_administrator(self, tmp_path, capsys):
        url = f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"

        assert main(["init-db", "--database-url", url, "--admin", ADMIN]) == 0
        assert main(["init-db", "--database-url", url, "--admin", ADMIN]) == 0

        out = capsys.readouterr().out
        assert "Administrator set to" in out
        assert "Administrator already set" in out
        assert asyncio.run(_administrator(url)) == ADMIN

    def test_init_db_refuses_second_administrator(self, tmp_path, capsys):
        url = f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"
        main(["init-db", "--database-url", url, "--admin", ADMIN])

        assert main(["init-db", "--database-url", url, "--admin", OUTSIDER]) == 1
        assert "NOT_OWNER" in capsys.readouterr().err
        assert asyncio.run(_administrator(url)) == ADMIN
