import pytest

from fake_store import FakeConnector, FakeStore
from insertbench import cli
from insertbench.connectors import ConnectionFactory
from insertbench.models import WorkerFailurePolicy


def _args(*argv: str):
    return cli._build_parser().parse_args(list(argv))


def test_flags_override_settings():
    args = _args(
        "--endpoints",
        "n1:5432,n2:5433",
        "--workers",
        "3",
        "--batch-size",
        "50",
        "--duration-ms",
        "1500",
        "--clean-table",
        "--no-round-robin",
        "--tolerate-worker-failures",
    )

    config = cli._build_run_config(args)

    assert [str(e) for e in config.endpoints] == ["n1:5432", "n2:5433"]
    assert config.worker_count == 3
    assert config.batch_size == 50
    assert config.run_duration_millis == 1500
    assert config.clean_table_before_run is True
    assert config.round_robin is False
    assert config.failure_policy == WorkerFailurePolicy.TOLERATE


def test_unset_flags_fall_back_to_settings():
    config = cli._build_run_config(_args())

    assert config.worker_count == cli.settings.DEFAULT_WORKER_COUNT
    assert config.batch_size == cli.settings.DEFAULT_BATCH_SIZE
    assert config.round_robin == cli.settings.DEFAULT_ROUND_ROBIN
    assert config.credentials.user == cli.settings.STORE_USER


def test_credentials_flags():
    config = cli._build_run_config(_args("--user", "bench", "--password", "pw"))

    assert config.credentials.user == "bench"
    assert config.credentials.password == "pw"


def test_show_failed_statements_defaults_to_twenty():
    assert _args("--show-failed-statements").show_failed_statements == 20
    assert _args("--show-failed-statements", "5").show_failed_statements == 5
    assert _args().show_failed_statements is None


def _patch_factory(monkeypatch, connector: FakeConnector) -> None:
    original = ConnectionFactory.from_config

    def fake_from_config(config, **kwargs):
        kwargs["connect"] = connector
        return original(config, **kwargs)

    monkeypatch.setattr(cli.ConnectionFactory, "from_config", fake_from_config)
    monkeypatch.setattr(cli, "configure_logging", lambda *a, **k: None)


def test_main_runs_and_returns_zero(monkeypatch):
    store = FakeStore(count=10, execute_delay=0.001)
    _patch_factory(monkeypatch, FakeConnector(store))

    code = cli.main(
        [
            "--endpoints",
            "a:5432",
            "--workload",
            "hello",
            "--workers",
            "2",
            "--batch-size",
            "5",
            "--duration-ms",
            "20",
        ]
    )

    assert code == 0
    assert store.count > 10
    assert (store.count - 10) % 5 == 0


def test_main_returns_one_when_store_unreachable(monkeypatch):
    _patch_factory(monkeypatch, FakeConnector(down={"a:5432"}))

    code = cli.main(["--endpoints", "a:5432", "--duration-ms", "20"])

    assert code == 1


def test_main_returns_two_on_invalid_configuration(monkeypatch):
    _patch_factory(monkeypatch, FakeConnector())

    code = cli.main(["--endpoints", "a:5432", "--workers", "0"])

    assert code == 2


def test_main_returns_one_on_bad_endpoint(monkeypatch):
    _patch_factory(monkeypatch, FakeConnector())

    assert cli.main(["--endpoints", "a:notaport"]) == 1


def test_no_run_with_failed_statements(monkeypatch, capsys):
    store = FakeStore()
    store.failed_statements = [("2026-01-01", "SQLParseException", "INSERT INTO x")]
    _patch_factory(monkeypatch, FakeConnector(store))

    code = cli.main(["--endpoints", "a:5432", "--no-run", "--show-failed-statements", "3"])

    assert code == 0
    assert store.inserts == []
    out = capsys.readouterr().out
    assert "2026-01-01 ERROR: SQLParseException" in out
    assert "  - query: INSERT INTO x" in out


def test_store_error_while_counting_exits_one_and_still_shows_failures(monkeypatch, capsys):
    store = FakeStore()
    store.fail_statement = lambda sql: sql.startswith("REFRESH")
    store.failed_statements = [("2026-01-01", "RelationUnknown", "REFRESH TABLE doc.sensors")]
    _patch_factory(monkeypatch, FakeConnector(store))

    code = cli.main(["--endpoints", "a:5432", "--show-failed-statements"])

    assert code == 1
    assert any("FROM sys.jobs_log" in s for s in store.statements)
    assert "2026-01-01 ERROR: RelationUnknown" in capsys.readouterr().out
