from __future__ import annotations

import json

import pytest

from mark3t_reputation import cli
from mark3t_reputation.application.ports.ledger import GET_ALL_RATINGS, GET_SUBJECT_SCORE, QueryResult, SendReceipt
from mark3t_reputation.domain.exceptions import ConnectivityError
from mark3t_reputation.runtime import bootstrap
from reputation.tests.fixtures.fakes import FakeLedger, FakeSigner


@pytest.fixture
def ledger(monkeypatch: pytest.MonkeyPatch) -> FakeLedger:
    fake = FakeLedger()

    def fake_build_runtime() -> bootstrap.ReputationRuntime:
        runtime = bootstrap.build_runtime(
            ledger_settings=bootstrap.LedgerSettings(_env_file=None),
            signer_settings=bootstrap.SignerSettings(_env_file=None, mnemonic=None, uri=None),
            ledger=fake,
        )
        runtime.signer = FakeSigner()
        return runtime

    monkeypatch.setattr(cli, "build_runtime", fake_build_runtime)
    monkeypatch.setattr(cli, "init_observability", lambda: None)
    monkeypatch.setattr(cli, "load_dotenv", lambda **_: False)
    return fake


def test_list_prints_ratings(ledger: FakeLedger, capsys: pytest.CaptureFixture[str]) -> None:
    ledger.set_records(
        GET_ALL_RATINGS,
        [
            {
                "purchase_id": 1,
                "timestamp": 86_400_000,
                "buyer": 1,
                "subject_id": 7,
                "article_id": 2,
                "article_score": 5,
                "shipping_score": 4,
                "seller_score": 3,
                "remark": "fast shipping",
            }
        ],
    )

    cli.main(["list"])

    payload = json.loads(capsys.readouterr().out)
    [rating] = payload["ratings"]
    assert rating["subject_id"] == 7
    assert rating["date"] == "1970-01-02"
    assert rating["comment"] == "fast shipping"
    assert ledger.closed


def test_summary_reports_averages(ledger: FakeLedger, capsys: pytest.CaptureFixture[str]) -> None:
    cli.main(["summary", "--subject", "7"])

    payload = json.loads(capsys.readouterr().out)
    assert payload == {
        "subject_id": 7,
        "count": 0,
        "avg_article": 0.0,
        "avg_shipping": 0.0,
        "avg_communication": 0.0,
        "avg_overall": 0.0,
    }


def test_score_prints_stars(ledger: FakeLedger, capsys: pytest.CaptureFixture[str]) -> None:
    ledger.query_results[GET_SUBJECT_SCORE] = QueryResult(success=True, response=80)

    cli.main(["score", "--subject", "7"])

    assert json.loads(capsys.readouterr().out) == {"subject_id": 7, "score": 4.0}


def test_submit_prints_transaction_hash(ledger: FakeLedger, capsys: pytest.CaptureFixture[str]) -> None:
    ledger.send_receipt = SendReceipt(ok=True, tx_hash="0xbeef")

    cli.main(
        ["submit", "--subject", "7", "--article", "5", "--shipping", "5", "--communication", "4", "--comment", "ok"]
    )

    payload = json.loads(capsys.readouterr().out)
    assert payload["success"] is True
    assert payload["hash"] == "0xbeef"
    assert ledger.send_calls[0].data["rating"]["remark"] == "ok"  # type: ignore[index]


def test_submit_validation_failure_exits_with_message(ledger: FakeLedger) -> None:
    with pytest.raises(SystemExit, match="scores must be whole numbers"):
        cli.main(["submit", "--subject", "7", "--article", "0", "--shipping", "5", "--communication", "4"])

    assert ledger.send_calls == []


def test_list_failure_exits_with_message(ledger: FakeLedger) -> None:
    ledger.query_errors[GET_ALL_RATINGS] = ConnectivityError("ledger unreachable")

    with pytest.raises(SystemExit, match="ledger unreachable"):
        cli.main(["list"])


def test_score_failure_exits_with_message(ledger: FakeLedger) -> None:
    ledger.query_errors[GET_SUBJECT_SCORE] = ConnectivityError("ledger unreachable")

    with pytest.raises(SystemExit, match="ledger unreachable"):
        cli.main(["score", "--subject", "7"])
