"""
Tests for the metrics_index.create_metrics_database entry point
"""

import pytest

from conftest import FakeIndex, FakeOpenAI
from metrics_index import create_metrics_database as cli

CSV_TEXT = (
    "Name,Description,Category,Integration,Url,Selectable with\n"
    "CPC,Cost per click,Cost,facebook-ads,https://example.com/cpc,\n"
    "CPM,Cost per thousand impressions,Cost,facebook-ads,https://example.com/cpm,\n"
    "\n"
    "Avg CPC,Average cost per click,Cost,google-ads,https://example.com/avg-cpc,Campaign\n"
)


@pytest.fixture
def environment(monkeypatch, tmp_path):
    csv_path = tmp_path / "fields.csv"
    csv_path.write_text(CSV_TEXT, encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("PINECONE_API_KEY", "pc-key")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-key")
    monkeypatch.setenv("FIELDS_CSV_PATH", str(csv_path))
    monkeypatch.setenv("UPSERT_BATCH_DELAY_MS", "0")
    monkeypatch.setenv("LOG_FILE", "")
    monkeypatch.setattr(cli, "load_dotenv", lambda **kwargs: False)

    index = FakeIndex(dimension=1024)
    opened = []

    def fake_get_pinecone_index(api_key, index_name):
        opened.append((api_key, index_name))
        return index

    monkeypatch.setattr(cli, "get_pinecone_index", fake_get_pinecone_index)
    monkeypatch.setattr(cli, "get_openai_client", lambda api_key=None: FakeOpenAI(native_dimension=1536))
    return index, opened


class TestMain:
    """Tests for the full CLI run"""

    def test_upsert_and_example_query(self, environment, capsys):
        """Loads CSV, upserts every row, prints the summary and recommendations"""
        index, opened = environment
        assert cli.main([]) == 0

        out = capsys.readouterr().out
        assert "Upsert completed: 3/3 records inserted" in out
        assert "Recommended metrics:" in out
        assert "- CPC (" in out
        assert "Avg CPC" not in out
        assert opened == [("pc-key", "fields")]
        assert set(index.vectors) == {"cpc", "cpm", "avg-cpc"}
        assert index.vectors["avg-cpc"]["metadata"]["selectableWith"] == "Campaign"

    def test_flags_override_environment(self, environment):
        """--index and --batch-size take precedence over env settings"""
        index, opened = environment
        assert cli.main(["--index", "metrics", "--batch-size", "2", "--skip-query"]) == 0
        assert opened == [("pc-key", "metrics")]
        assert index.upsert_calls == [2, 1]
        assert index.query_calls == []

    def test_unknown_reference_exits_non_zero(self, environment, capsys):
        """A failing example query is logged and turned into exit status 1"""
        index, _ = environment
        assert cli.main(["--query-metric", "Not A Metric"]) == 1
        assert "Upsert completed: 3/3 records inserted" in capsys.readouterr().out
        assert index.query_calls == []

    def test_missing_credentials_exit_non_zero(self, environment, monkeypatch):
        """Configuration errors do not escape main()"""
        monkeypatch.delenv("OPENAI_API_KEY")
        index, opened = environment
        assert cli.main([]) == 1
        assert opened == []

    def test_missing_csv_exit_non_zero(self, environment, monkeypatch, tmp_path):
        """An unreadable input file is reported, not raised"""
        monkeypatch.setenv("FIELDS_CSV_PATH", str(tmp_path / "missing.csv"))
        assert cli.main([]) == 1

    def test_unopenable_log_file_exit_non_zero(self, environment, monkeypatch, tmp_path):
        """A log file in a missing directory is reported and turned into exit status 1"""
        index, opened = environment
        monkeypatch.setenv("LOG_FILE", str(tmp_path / "no_such_dir" / "metrics.log"))
        assert cli.main(["--skip-query"]) == 1
        assert opened == []
        assert index.upsert_calls == []
