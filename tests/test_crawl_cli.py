from __future__ import annotations

import logging

from webcrawl import crawl as cli
from webcrawl.crawler import CrawlConfig, CrawlSummary, TerminationReason


def test_flags_override_config_file(tmp_path):
    path = tmp_path / "crawl.yaml"
    path.write_text("workerCount: 8\nmaxDepth: 4\n", encoding="utf-8")

    args = cli.parse_args(["https://example.com", "--config", str(path), "--max_depth", "1"])
    config = cli.build_config(args)

    assert config.worker_count == 8
    assert config.max_depth == 1
    assert args.retries == 0


def test_defaults_without_flags():
    args = cli.parse_args(["https://example.com"])

    assert cli.build_config(args) == CrawlConfig()


def test_invalid_config_exits_with_usage_error(tmp_path):
    path = tmp_path / "crawl.json"
    path.write_text('{"workers": 2}', encoding="utf-8")

    assert cli.main(["https://example.com", "--config", str(path)]) == 2


def test_invalid_seed_exits_with_usage_error():
    assert cli.main(["not a url"]) == 2


def test_print_summary(capsys):
    summary = CrawlSummary(
        seed_url="https://example.com/",
        visited_count=3,
        failed_urls=(),
        elapsed_seconds=1.25,
        termination=TerminationReason.QUIESCENT,
    )

    cli.print_summary(summary, print_summary_json=True)

    out = capsys.readouterr().out
    assert "visited: 3" in out
    assert '"termination": "quiescent"' in out


def test_setup_logging_writes_to_file(tmp_path):
    log_file = tmp_path / "logs" / "crawl.log"

    cli.setup_logging(verbose=True, log_file=log_file)
    logging.getLogger("webcrawl.test").debug("hello %s", "file")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert "hello file" in log_file.read_text(encoding="utf-8")
    assert logging.getLogger("urllib3").level == logging.WARNING

    for handler in list(logging.getLogger().handlers):
        handler.close()
    logging.getLogger().handlers.clear()
