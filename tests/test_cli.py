"""CLI tests."""

import json

from typer.testing import CliRunner

from claimrisk.cli.app import app

runner = CliRunner()


def test_cli_holidays():
    result = runner.invoke(app, ["holidays", "2020"])
    assert result.exit_code == 0
    assert "2020-07-03" in result.output


def test_cli_business_days():
    result = runner.invoke(app, ["business-days", "2024-07-03", "2024-07-08"])
    assert result.exit_code == 0
    assert "2 business days" in result.output

    bad = runner.invoke(app, ["business-days", "2024-07-08", "2024-07-03"])
    assert bad.exit_code == 1


def test_cli_train_list_and_score(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"duckdb:///{tmp_path / 'cli.duckdb'}")
    csv_path = tmp_path / "claims.csv"

    result = runner.invoke(app, ["generate-synthetic", str(csv_path), "--n", "300"])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["init-db"])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["train-model", "--dataset", str(csv_path), "--model-id", "gbt_cli"])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["list-models"])
    assert result.exit_code == 0
    assert "gbt_cli" in result.output

    claim_path = tmp_path / "claim.json"
    claim_path.write_text(
        json.dumps(
            {
                "claim_id": "CLI-1",
                "service_date": "2024-07-03",
                "payment_date": "2024-07-08",
                "payer_id": "UHC",
                "procedure_codes": ["99213"],
                "billed_amount": 90.0,
                "place_of_service": "11",
            }
        ),
        encoding="utf-8",
    )
    result = runner.invoke(app, ["score-claim", "--claim", str(claim_path), "--model-id", "gbt_cli"])
    assert result.exit_code == 0, result.output
    assert "scored" in result.output
