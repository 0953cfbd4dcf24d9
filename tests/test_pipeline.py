import logging
from collections.abc import Iterator

from dealer_contacts.config import CrawlConfig
from dealer_contacts.io_csv import CsvResultSink
from dealer_contacts.models import Contact, CrawlResult, PageExtraction
from dealer_contacts.pipeline import (
    CrawlOrchestrator,
    CrawlPhase,
    DomainCrawl,
    crawl_domains,
    run_pipeline,
)
from dealer_contacts.resolver import DomainResolver

BASE = "https://www.dealer.com"


class DummyFetcher:
    def __init__(self, pages: dict[str, str], texts: dict[str, str] | None = None) -> None:
        self.pages = pages
        self.texts = texts or {}
        self.fetched: list[str] = []

    def fetch(self, url: str) -> str:
        self.fetched.append(url)
        return self.pages.get(url, "")

    def fetch_text(self, url: str) -> str:
        return self.texts.get(url, "")

    def probe(self, url: str) -> str:
        return url if url == BASE else ""


class StaticDiscoverer:
    def __init__(self, paths: list[str]) -> None:
        self.paths = paths

    def discover(self, _base_url: str, _homepage: object) -> list[str]:
        return list(self.paths)


def _config(**overrides: object) -> CrawlConfig:
    values: dict[str, object] = {
        "domains": ("dealer.com",),
        "min_delay": 0,
        "max_delay": 0,
        "show_progress": False,
    }
    values.update(overrides)
    return CrawlConfig(**values)  # type: ignore[arg-type]


def _orchestrator(fetcher: DummyFetcher, paths: list[str], **overrides: object) -> CrawlOrchestrator:
    logger = logging.getLogger("test")
    return CrawlOrchestrator(
        fetcher=fetcher,
        resolver=DomainResolver(fetcher=fetcher, logger=logger),
        discoverer=StaticDiscoverer(paths),  # type: ignore[arg-type]
        config=_config(**overrides),
        logger=logger,
    )


def _staff_page(*people: tuple[str, str]) -> str:
    return "".join(f'<p><a href="mailto:{email}">{name}</a></p>' for name, email in people)


def test_early_stop_after_page_with_three_named_contacts() -> None:
    fetcher = DummyFetcher(
        {
            f"{BASE}/": "<p>Welcome</p>",
            f"{BASE}/contact": "<p>main@dealer.com</p>",
            f"{BASE}/staff": _staff_page(
                ("Ann Lee", "ann@dealer.com"),
                ("Bob Ray", "bob@dealer.com"),
                ("Cy Young", "cy@dealer.com"),
            ),
            f"{BASE}/about": "<p>late@dealer.com</p>",
        }
    )
    result = _orchestrator(fetcher, ["/", "/contact", "/staff", "/about", "/team"]).crawl(
        "dealer.com"
    )

    assert f"{BASE}/about" not in fetcher.fetched
    assert f"{BASE}/team" not in fetcher.fetched
    assert result.emails == ["main@dealer.com", "ann@dealer.com", "bob@dealer.com", "cy@dealer.com"]
    assert [contact.name for contact in result.contacts] == ["Ann Lee", "Bob Ray", "Cy Young"]
    assert result.error is None


def test_early_stop_when_five_distinct_emails_collected() -> None:
    fetcher = DummyFetcher(
        {
            f"{BASE}/": "<p>a@dealer.com b@dealer.com c@dealer.com</p>",
            f"{BASE}/contact": "<p>d@dealer.com e@dealer.com</p>",
            f"{BASE}/about": "<p>f@dealer.com</p>",
        }
    )
    result = _orchestrator(fetcher, ["/", "/contact", "/about"]).crawl("dealer.com")
    assert result.email_count == 5
    assert f"{BASE}/about" not in fetcher.fetched


def test_homepage_alone_does_not_trigger_early_stop() -> None:
    fetcher = DummyFetcher(
        {
            f"{BASE}/": " ".join(f"u{i}@dealer.com" for i in range(6)),
            f"{BASE}/contact": "<p>z@dealer.com</p>",
        }
    )
    _orchestrator(fetcher, ["/", "/contact"]).crawl("dealer.com")
    assert fetcher.fetched == [f"{BASE}/", f"{BASE}/contact"]


def test_failed_pages_are_skipped_and_emails_dedupe_exactly() -> None:
    fetcher = DummyFetcher(
        {
            f"{BASE}/": "<p>Sales@dealer.com</p>",
            f"{BASE}/about": "<p>sales@dealer.com Sales@dealer.com</p>",
        }
    )
    result = _orchestrator(fetcher, ["/", "/contact", "/about"]).crawl("dealer.com")
    assert fetcher.fetched == [f"{BASE}/", f"{BASE}/contact", f"{BASE}/about"]
    assert result.emails == ["Sales@dealer.com", "sales@dealer.com"]


def test_max_pages_bounds_candidates() -> None:
    fetcher = DummyFetcher({f"{BASE}/": "<p>hi</p>"})
    _orchestrator(fetcher, ["/", "/a-contact", "/b-contact", "/c-contact"], max_pages_per_domain=2).crawl(
        "dealer.com"
    )
    assert fetcher.fetched == [f"{BASE}/", f"{BASE}/a-contact"]


def test_unreachable_homepage_yields_error_result() -> None:
    fetcher = DummyFetcher({})
    result = _orchestrator(fetcher, ["/", "/contact"]).crawl("dealer.com")
    assert result.emails == []
    assert result.contacts == []
    assert result.error and "Homepage unreachable" in result.error
    assert fetcher.fetched == [f"{BASE}/"]


def test_unexpected_error_is_contained_per_domain() -> None:
    class ExplodingDiscoverer:
        def discover(self, _base_url: str, _homepage: object) -> list[str]:
            raise RuntimeError("parser exploded")

    fetcher = DummyFetcher({f"{BASE}/": "<p>ok@dealer.com</p>"})
    logger = logging.getLogger("test")
    orchestrator = CrawlOrchestrator(
        fetcher=fetcher,
        resolver=DomainResolver(fetcher=fetcher, logger=logger),
        discoverer=ExplodingDiscoverer(),  # type: ignore[arg-type]
        config=_config(),
        logger=logger,
    )
    result = orchestrator.crawl("dealer.com")
    assert result.emails == []
    assert result.error == "RuntimeError: parser exploded"


def test_run_continues_after_sink_failure() -> None:
    class FlakySink:
        def __init__(self) -> None:
            self.written: list[str] = []

        def write(self, result: CrawlResult) -> None:
            if result.domain == "dealer.com":
                raise OSError("disk full")
            self.written.append(result.domain)

    fetcher = DummyFetcher({f"{BASE}/": "<p>hi@dealer.com</p>"})
    sink = FlakySink()
    results = _orchestrator(fetcher, ["/"]).run(["dealer.com", "missing.com"], sink=sink)
    assert [result.domain for result in results] == ["dealer.com", "missing.com"]
    assert results[0].emails == ["hi@dealer.com"]
    assert results[1].error is not None
    assert sink.written == ["missing.com"]


def test_run_accepts_any_domain_source() -> None:
    class ListedDomains:
        def __init__(self, *domains: str) -> None:
            self._domains = domains

        def __iter__(self) -> Iterator[str]:
            return iter(self._domains)

    fetcher = DummyFetcher({f"{BASE}/": "<p>hi@dealer.com</p>"})
    results = _orchestrator(fetcher, ["/"]).run(ListedDomains("dealer.com"))
    assert [result.domain for result in results] == ["dealer.com"]


def test_domain_crawl_only_stops_during_followup_phase() -> None:
    page = PageExtraction(emails=[f"u{i}@dealer.com" for i in range(6)])
    state = DomainCrawl(domain="dealer.com")
    state.absorb(page)

    assert state.check_stop(page, contact_threshold=3, email_threshold=5) is False
    assert state.phase is CrawlPhase.HOMEPAGE

    state.phase = CrawlPhase.FOLLOWUP
    assert state.check_stop(PageExtraction(), contact_threshold=3, email_threshold=5) is True
    assert state.phase is CrawlPhase.DONE


def test_domain_crawl_counts_named_contacts_on_page() -> None:
    state = DomainCrawl(domain="dealer.com", phase=CrawlPhase.FOLLOWUP)
    page = PageExtraction(
        contacts=[
            Contact(name="Ann Lee", email="ann@dealer.com", source="s"),
            Contact(name="Email Us", email="desk@dealer.com", source="s"),
            Contact(name="Bob Ray", email="bob@dealer.com", source="s"),
        ]
    )
    assert state.check_stop(page, contact_threshold=3, email_threshold=5) is False
    assert state.check_stop(page, contact_threshold=2, email_threshold=5) is True


def test_domain_crawl_absorb_reports_new_emails() -> None:
    state = DomainCrawl(domain="dealer.com")
    assert state.absorb(PageExtraction(emails=["a@dealer.com"])) == ["a@dealer.com"]
    assert state.absorb(PageExtraction(emails=["a@dealer.com", "b@dealer.com"])) == ["b@dealer.com"]
    assert state.to_result().emails == ["a@dealer.com", "b@dealer.com"]


def test_crawl_domains_with_real_discovery() -> None:
    fetcher = DummyFetcher(
        {
            f"{BASE}/": '<nav><a href="/meet-our-staff">Staff</a></nav><p>desk@dealer.com</p>',
            f"{BASE}/meet-our-staff": _staff_page(("Dana Fox", "dana@dealer.com")),
        },
        texts={f"{BASE}/sitemap.xml": "<loc>https://www.dealer.com/inventory</loc>"},
    )
    results = crawl_domains(_config(), fetcher=fetcher, logger=logging.getLogger("test"))
    assert len(results) == 1
    assert results[0].emails == ["desk@dealer.com", "dana@dealer.com"]
    assert results[0].contacts[0].source == f"{BASE}/meet-our-staff"


def test_run_pipeline_writes_outputs(monkeypatch, tmp_path) -> None:
    captured: dict[str, object] = {}

    def fake_crawl_domains(config, **kwargs):
        captured["sink"] = kwargs["sink"]
        captured["host_checker"] = kwargs["host_checker"]
        return [CrawlResult(domain="dealer.com", emails=["a@dealer.com"])]

    monkeypatch.setattr("dealer_contacts.pipeline.crawl_domains", fake_crawl_domains)
    output = tmp_path / "contacts.csv"
    config = _config(output=str(output), summary_output=str(tmp_path / "summary.csv"), dns_precheck=False)

    assert run_pipeline(config, logger=logging.getLogger("test")) == str(output)
    assert "a@dealer.com" in output.read_text(encoding="utf-8")
    assert captured["host_checker"] is None
    assert isinstance(captured["sink"], CsvResultSink)
