from pathlib import Path

import pytest

from dealer_contacts import cli


def test_parse_args_with_domains() -> None:
    args = cli.parse_args(["--domains", "dealer.com", "other.net"])
    assert args.domains == ["dealer.com", "other.net"]


def test_parse_args_with_domains_file() -> None:
    args = cli.parse_args(["--domains-file", "domains.csv"])
    assert args.domains_file == "domains.csv"


def test_parse_args_requires_source() -> None:
    with pytest.raises(SystemExit):
        cli.parse_args([])


def test_parse_args_rejects_both_sources() -> None:
    with pytest.raises(SystemExit):
        cli.parse_args(["--domains", "dealer.com", "--domains-file", "domains.txt"])


def test_namespace_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DELAY_MS", raising=False)
    monkeypatch.delenv("MAX_PAGES_PER_DOMAIN", raising=False)
    config = cli.namespace_to_config(cli.parse_args(["--domains", "https://www.dealer.com/"]))
    assert config.domains == ("www.dealer.com",)
    assert config.min_delay == config.max_delay == 3.0
    assert config.max_pages_per_domain == 100
    assert config.dns_precheck is True


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DELAY_MS", "500")
    monkeypatch.setenv("MAX_PAGES_PER_DOMAIN", "7")
    config = cli.namespace_to_config(cli.parse_args(["--domains", "dealer.com", "--no-dns-precheck"]))
    assert config.min_delay == config.max_delay == 0.5
    assert config.max_pages_per_domain == 7
    assert config.dns_precheck is False


def test_flags_beat_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DELAY_MS", "500")
    monkeypatch.setenv("MAX_PAGES_PER_DOMAIN", "7")
    args = cli.parse_args(
        ["--domains", "dealer.com", "--min-delay", "1", "--max-delay", "2", "--max-pages", "3"]
    )
    config = cli.namespace_to_config(args)
    assert (config.min_delay, config.max_delay, config.max_pages_per_domain) == (1.0, 2.0, 3)


def test_main_returns_zero_on_success(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "run_pipeline", lambda config, logger: config.output)
    assert cli.main(["--domains", "dealer.com", "--no-progress"]) == 0


def test_main_reads_domains_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    seen: list[tuple[str, ...]] = []

    def fake_run(config, logger):
        seen.append(config.domains)
        return config.output

    domains = tmp_path / "domains.txt"
    domains.write_text("dealer.com\nother.net\n", encoding="utf-8")
    monkeypatch.setattr(cli, "run_pipeline", fake_run)
    assert cli.main(["--domains-file", str(domains)]) == 0
    assert seen == [("dealer.com", "other.net")]


def test_main_returns_two_on_invalid_config() -> None:
    assert cli.main(["--domains", "dealer.com", "--max-pages", "0"]) == 2
    assert cli.main(["--domains", "localhost"]) == 2


def test_main_returns_two_on_bad_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DELAY_MS", "soon")
    assert cli.main(["--domains", "dealer.com"]) == 2


def test_main_returns_two_on_missing_domains_file(tmp_path: Path) -> None:
    assert cli.main(["--domains-file", str(tmp_path / "nope.txt")]) == 2
