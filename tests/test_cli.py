"""Tests for the command-line entry point."""

import json
from unittest.mock import patch

import pytest

from books_migration import cli
from books_migration.exceptions import SourceAPIError
from books_migration.loaders.zoho_loader import ZohoLoader
from books_migration.models.config import Backend, MigrationConfig
from books_migration.models.migration import EntityType
from books_migration.orchestrator import MigrationPipeline
from books_migration.services.token_manager import TokenSet


@pytest.fixture
def config_path(tmp_path, config_data):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(config_data))
    return path


@pytest.fixture
def fake_pipeline(zoho, extractor):
    extractor.set(EntityType.CUSTOMER, [{"id": 1, "organization": "Acme"}])
    captured = {}

    def build(config, token_manager, dry_run=False, use_config_mapping=False, include_items=True):
        captured.update(dry_run=dry_run, use_config_mapping=use_config_mapping, include_items=include_items)
        pipeline = MigrationPipeline(extractor, ZohoLoader(zoho, dry_run=dry_run), include_items=include_items)
        captured["pipeline"] = pipeline
        return pipeline

    with patch.object(MigrationPipeline, "from_config", side_effect=build):
        yield captured


class TestParser:
    def test_migrate_options(self):
        args = cli.build_parser().parse_args(
            ["migrate", "invoices", "--config", "c.json", "--dry-run", "--skip-items", "--continue-on-error"]
        )

        assert args.stage == "invoices"
        assert args.config == "c.json"
        assert args.dry_run and args.skip_items and args.continue_on_error
        assert not args.use_config_mapping

    def test_rejects_unknown_stage(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["migrate", "timesheets"])


class TestMigrate:
    def test_single_stage_run(self, config_path, fake_pipeline, zoho, capsys):
        exit_code = cli.main(["migrate", "customers", "--config", str(config_path)])

        assert exit_code == 0
        assert [c["contact_name"] for c in zoho.created("/contacts")] == ["Acme"]
        out = capsys.readouterr().out
        assert "Customer Migration Summary:" in out
        assert "MIGRATION COMPLETE" in out

    def test_flags_reach_pipeline(self, config_path, fake_pipeline):
        cli.main(["migrate", "all", "--config", str(config_path), "--dry-run", "--skip-items"])

        assert fake_pipeline["dry_run"] is True
        assert fake_pipeline["include_items"] is False

    def test_writes_report(self, config_path, fake_pipeline, tmp_path):
        report = tmp_path / "reports" / "run.json"

        cli.main(["migrate", "customers", "--config", str(config_path), "--report", str(report)])

        data = json.loads(report.read_text())
        assert data["status"] == "completed"
        assert data["steps"][0]["entity"] == "customers"
        assert data["steps"][0]["result"]["succeeded"] == 1

    def test_aborted_stage_exits_nonzero(self, config_path, fake_pipeline, extractor, monkeypatch, capsys):
        def broken(entity, page):
            raise SourceAPIError(500, "down")

        monkeypatch.setattr(extractor, "fetch_page", broken)

        exit_code = cli.main(["migrate", "customers", "--config", str(config_path)])

        assert exit_code == 1
        assert "Aborted stage: customers" in capsys.readouterr().out

    def test_undecodable_listing_is_reported(self, config_path, fake_pipeline, zoho, tmp_path, capsys):
        zoho.add("/contacts", contact_name=None, contact_type="customer")
        report = tmp_path / "run.json"

        exit_code = cli.main(["migrate", "customers", "--config", str(config_path), "--report", str(report)])

        assert exit_code == 1
        assert "Aborted stage: customers" in capsys.readouterr().out
        assert json.loads(report.read_text())["status"] == "failed"

    def test_missing_config_exits_nonzero(self, tmp_path, capsys):
        exit_code = cli.main(["migrate", "all", "--config", str(tmp_path / "missing.json")])

        assert exit_code == 1
        assert "Configuration error" in capsys.readouterr().err


class TestTokenPersistence:
    def test_refreshed_tokens_are_written_back(self, config_path):
        config = MigrationConfig.load(str(config_path))

        cli.token_persister(config)(Backend.FRESHBOOKS, TokenSet("fb-new", "fb-r2"))

        saved = json.loads(config_path.read_text())
        assert saved["freshbooks"]["access_token"] == "fb-new"
        assert saved["freshbooks"]["refresh_token"] == "fb-r2"
        assert saved["zoho"]["access_token"] == "zb-access"
