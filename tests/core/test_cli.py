"""python -m fieldops.core command tests"""

import sys

import pytest
from fieldops.core.__main__ import init_database, main, replay
from fieldops.core.store import create_store_group
from fieldops.gateway.services.task_service import TaskService


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = tmp_path / "sqlite" / "cli.db"
    monkeypatch.setenv("FIELDOPS_DB_PATH", str(path))
    return path


class TestCli:
    async def test_init_db_creates_file(self, db_path, capsys):
        await init_database()
        assert db_path.exists()
        assert "database ready" in capsys.readouterr().out

    async def test_replay_prints_activity(self, db_path, capsys):
        group = await create_store_group(str(db_path))
        try:
            task = await TaskService(group).create_task("Paint fence", actor_id="d")
        finally:
            await group.close()

        await replay(task.task_id)

        out = capsys.readouterr().out
        assert "applied 1 events" in out
        assert '"status": "PREPARING"' in out

    def test_unknown_command_exits(self, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["fieldops.core", "explode"])
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 1
        assert "unknown command" in capsys.readouterr().out

    async def test_replay_whole_log(self, db_path, capsys):
        group = await create_store_group(str(db_path))
        try:
            service = TaskService(group)
            await service.create_task("Paint fence", actor_id="d")
            await service.create_task("Fix gate", actor_id="d")
        finally:
            await group.close()

        await replay()

        out = capsys.readouterr().out
        assert "applied 2 events" in out
        assert out.count('"status": "PREPARING"') == 2
