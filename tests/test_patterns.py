"""Tests for the pattern library: models, cache, repositories and engine."""

import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace

import pytest

from src.patterns import (
    CompiledPatternCache,
    ExtractionPattern,
    InMemoryPatternRepository,
    PatternCategory,
    PatternExtractionEngine,
    SQLitePatternRepository,
    create_repository,
    default_patterns,
)
from src.patterns.models import to_re_flags
from src.utils.exceptions import DatabaseError, PatternCompilationError

C = PatternCategory


def pattern(name, category, regex, priority=100, weight=1.0, **extra):
    return ExtractionPattern(
        name=name, category=category, regex=regex, priority=priority, confidence_weight=weight, **extra
    )


def engine_with(*patterns):
    return PatternExtractionEngine(InMemoryPatternRepository(patterns))


class TestExtractionPattern:
    """Pattern model defaults and derived values."""

    def test_weight_clamped(self):
        """Weights are bounded to [0.1, 1.0] and default to 1.0."""
        assert pattern("a", C.AMOUNT, "x", weight=5.0).effective_weight == 1.0
        assert pattern("a", C.AMOUNT, "x", weight=0.01).effective_weight == 0.1
        assert pattern("a", C.AMOUNT, "x", weight=None).effective_weight == 1.0

    def test_missing_priority_and_group(self):
        """Absent priority and capture group fall back to 100 and 1."""
        p = pattern("a", C.AMOUNT, "x", priority=None, capture_group=None)

        assert p.effective_priority == 100
        assert p.effective_capture_group == 1

    def test_flag_translation(self):
        """Persisted bits map onto re flags."""
        assert to_re_flags(2) == re.IGNORECASE
        assert to_re_flags(2 | 8 | 32) == re.IGNORECASE | re.MULTILINE | re.DOTALL
        assert to_re_flags(0) == 0
        assert to_re_flags(None) == re.IGNORECASE

    def test_cache_key_tracks_regex(self):
        """Editing the regex of a saved pattern changes its cache key."""
        original = pattern("total", C.AMOUNT, r"total (\d+)", id=7)
        edited = replace(original, regex=r"sum (\d+)")

        assert original.cache_key[0] == edited.cache_key[0] == 7
        assert original.cache_key != edited.cache_key

    def test_dict_round_trip(self):
        """Patterns rebuild from their dictionary form."""
        p = pattern("due", C.DUE_DATE, r"due (\S+)", priority=5, date_format="%d.%m.%Y")

        assert ExtractionPattern.from_dict(p.to_dict()) == p


class TestCompiledPatternCache:
    """Compute-once regex cache."""

    def test_compiles_once(self):
        """Repeated lookups reuse the compiled regex."""
        cache = CompiledPatternCache()
        p = pattern("num", C.INVOICE_NUMBER, r"no (\d+)")

        first = cache.get(p)
        second = cache.get(p)

        assert first is second
        assert cache.compilations == 1
        assert p in cache

    def test_concurrent_first_access(self):
        """Concurrent first lookups compile a pattern exactly once."""
        cache = CompiledPatternCache()
        p = pattern("num", C.INVOICE_NUMBER, r"no (\d+)")

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(lambda _: cache.get(p), range(64)))

        assert cache.compilations == 1
        assert all(result is results[0] for result in results)

    def test_compilation_error_cached(self):
        """A broken regex raises every time but is compiled only once."""
        cache = CompiledPatternCache()
        broken = pattern("broken", C.AMOUNT, r"([0-9")

        for _ in range(2):
            with pytest.raises(PatternCompilationError):
                cache.get(broken)

        assert cache.compilations == 1
        assert cache.failed_count == 1

    def test_edited_pattern_recompiled(self):
        """A new regex under the same id is compiled afresh."""
        cache = CompiledPatternCache()
        original = pattern("total", C.AMOUNT, r"total (\d+)", id=3)
        cache.get(original)

        compiled = cache.get(replace(original, regex=r"sum (\d+)"))

        assert compiled.pattern == r"sum (\d+)"
        assert cache.compilations == 2

    def test_invalidate(self):
        """Invalidation empties the cache."""
        cache = CompiledPatternCache()
        cache.get(pattern("num", C.INVOICE_NUMBER, r"no (\d+)"))

        cache.invalidate()

        assert cache.size == 0


class TestPatternExtractionEngine:
    """First-match-wins extraction."""

    def test_total_amount(self):
        """A labelled total is captured with boosted confidence."""
        engine = engine_with(pattern("Total", C.AMOUNT, r"(?i)\btotal\s*:?\s*\$([0-9,]+\.\d{2})", 10, 0.95))

        result = engine.extract("Total: $1,146.48\nBalance Due: $1,146.48", C.AMOUNT)

        assert result.value == "1,146.48"
        assert result.pattern_used == "Total"
        assert result.confidence >= 0.85
        assert result.found

    def test_invoice_number(self):
        """Invoice numbers are captured from group 1."""
        engine = engine_with(pattern("InvoiceNo", C.INVOICE_NUMBER, r"(?i)\binvoice\s+no\.?\s*([0-9]+)", 10, 0.9))

        assert engine.extract_invoice_number("Invoice No 123100401").value == "123100401"

    def test_confidence_formula(self):
        """Weight times boundary, length and priority bonuses."""
        engine = engine_with(pattern("Ref", C.INVOICE_NUMBER, r"ref ([0-9]+)", 30, 0.6))

        result = engine.extract("ref 12345", C.INVOICE_NUMBER)

        assert result.confidence == pytest.approx(0.6 * (1.0 + 0.1 + 0.05 + 0.05))

    def test_first_match_wins(self):
        """A lower priority number wins even against a heavier pattern."""
        engine = engine_with(
            pattern("Heavy", C.INVOICE_NUMBER, r"number ([0-9]+)", 20, 1.0),
            pattern("Light", C.INVOICE_NUMBER, r"ref ([A-Z]+)", 10, 0.3),
        )

        result = engine.extract("ref ABC number 42", C.INVOICE_NUMBER)

        assert result.value == "ABC"
        assert result.pattern_used == "Light"

    def test_invalid_regex_excluded(self):
        """Patterns that do not compile are skipped and reported."""
        engine = engine_with(
            pattern("Broken", C.AMOUNT, r"total ([0-9", 1),
            pattern("Working", C.AMOUNT, r"total ([0-9]+)", 5),
        )

        result = engine.extract("total 99", C.AMOUNT)

        assert result.value == "99"
        assert "Broken" in engine.invalid_patterns
        assert [p.name for p in engine.patterns_for(C.AMOUNT)] == ["Working"]

    def test_validation_failure_falls_through(self):
        """A value rejected by validation moves on to the next pattern."""
        engine = engine_with(
            pattern("Strict", C.INVOICE_NUMBER, r"invoice ([A-Z0-9]+)", 1, validation_regex=r"\d+"),
            pattern("Loose", C.INVOICE_NUMBER, r"ref ([A-Z0-9]+)", 2),
        )

        result = engine.extract("invoice ABC ref 777", C.INVOICE_NUMBER)

        assert result.value == "777"
        assert result.pattern_used == "Loose"

    def test_capture_group_out_of_range(self):
        """A capture group beyond the regex groups yields no value."""
        engine = engine_with(pattern("Bad", C.INVOICE_NUMBER, r"invoice ([0-9]+)", capture_group=3))

        assert engine.extract("invoice 123", C.INVOICE_NUMBER).value is None

    def test_broken_pattern_skipped(self):
        """A pattern failing at match time is recorded and the next one is tried."""
        engine = engine_with(
            pattern("NegativeGroup", C.INVOICE_NUMBER, r"invoice ([0-9]+)", 1, capture_group=-1),
            pattern("Plain", C.INVOICE_NUMBER, r"invoice ([0-9]+)", 2),
        )

        result = engine.extract("invoice 123", C.INVOICE_NUMBER)

        assert result.value == "123"
        assert result.pattern_used == "Plain"
        assert "NegativeGroup" in engine.invalid_patterns

    def test_concurrent_broken_pattern(self):
        """Concurrent fields record a failing pattern once and still extract."""
        engine = engine_with(
            pattern("NegativeGroup", C.AMOUNT, r"total (\d+)", 1, capture_group=-1),
            pattern("Total", C.AMOUNT, r"total (\d+)", 2),
            pattern("BrokenRegex", C.INVOICE_NUMBER, r"([0-9", 1),
        )

        with ThreadPoolExecutor(max_workers=8) as executor:
            values = list(executor.map(lambda _: engine.extract("total 42", C.AMOUNT).value, range(32)))
            list(executor.map(lambda _: engine.extract("no 7", C.INVOICE_NUMBER), range(32)))

        assert values == ["42"] * 32
        assert set(engine.invalid_patterns) == {"NegativeGroup", "BrokenRegex"}
        assert engine.cache.compilations == 3

    def test_repeated_extraction_identical(self, engine, sample_invoice_text):
        """Same text and unchanged patterns give identical field extractions."""
        categories = [[C.INVOICE_NUMBER], [C.AMOUNT], [C.INVOICE_DATE, C.DATE], [C.DUE_DATE, C.DATE], [C.VENDOR]]

        first = [engine.extract(sample_invoice_text, category) for category in categories]
        second = [engine.extract(sample_invoice_text, category) for category in categories]

        assert first == second
        assert any(extraction.found for extraction in first)

    def test_declared_date_format(self):
        """Dates are parsed with the declared format and returned as ISO."""
        engine = engine_with(
            pattern("EuDate", C.INVOICE_DATE, r"date\s*:\s*(\d{2}\.\d{2}\.\d{4})", date_format="%d.%m.%Y")
        )

        result = engine.extract("Date: 15.01.2026", C.INVOICE_DATE)

        assert result.value == "2026-01-15"
        assert result.matched_category == C.INVOICE_DATE

    def test_unparseable_date(self):
        """A date-shaped match that does not parse is not a value."""
        engine = engine_with(pattern("Slashes", C.DATE, r"(\d+/\d+/\d{4})", date_format="%m/%d/%Y"))

        assert engine.extract("Date: 99/99/2026", C.DATE).value is None

    def test_category_fallback(self):
        """The next category is consulted when the first finds nothing."""
        engine = engine_with(pattern("AnyDate", C.DATE, r"(\d{4}-\d{2}-\d{2})", date_format="%Y-%m-%d"))

        result = engine.extract_due_date("Payable 2026-03-01")

        assert result.value == "2026-03-01"
        assert result.category == C.DUE_DATE
        assert result.matched_category == C.DATE

    def test_empty_text(self):
        """Empty text yields a miss without a pattern."""
        result = engine_with().extract("", C.AMOUNT)

        assert result.value is None
        assert result.pattern_used is None
        assert result.confidence == 0.0

    def test_no_categories(self):
        """At least one category is required."""
        with pytest.raises(ValueError):
            engine_with().extract("text", [])

    def test_repository_change_invalidates(self):
        """Deactivating the winning pattern takes effect on the next call."""
        repository = InMemoryPatternRepository([
            pattern("First", C.INVOICE_NUMBER, r"ref ([A-Z]+)", 1),
            pattern("Second", C.INVOICE_NUMBER, r"number ([0-9]+)", 2),
        ])
        engine = PatternExtractionEngine(repository)
        assert engine.extract("ref ABC number 42", C.INVOICE_NUMBER).value == "ABC"

        repository.set_active(repository.find_by_name("First").id, False)

        assert engine.cache.size == 0
        assert engine.extract("ref ABC number 42", C.INVOICE_NUMBER).value == "42"

    def test_default_patterns_on_sample(self, engine, sample_invoice_text):
        """The built-in library extracts the sample invoice fields."""
        assert engine.extract_invoice_number(sample_invoice_text).value == "INV-20260042"
        assert engine.extract_total_amount(sample_invoice_text).value == "1,146.48"
        assert engine.extract_invoice_date(sample_invoice_text).value == "2026-01-15"
        assert engine.extract_due_date(sample_invoice_text).value == "2026-02-14"

    def test_statistics_and_report(self, engine, repository, sample_invoice_text):
        """Diagnostics cover every active pattern."""
        stats = engine.statistics()
        report = engine.test_all_patterns(sample_invoice_text)

        assert stats['total_patterns'] == repository.count() == len(default_patterns())
        assert stats['invalid_patterns'] == 0
        assert len(report) == repository.count_active()
        assert any(entry['matched'] for entry in report)


class TestInMemoryPatternRepository:
    """Process-local repository."""

    def test_active_patterns_sorted(self):
        """Active patterns come back in ascending priority."""
        repository = InMemoryPatternRepository([
            pattern("Late", C.AMOUNT, "a", 50),
            pattern("Early", C.AMOUNT, "b", 5),
            pattern("Off", C.AMOUNT, "c", 1, is_active=False),
        ])

        assert [p.name for p in repository.find_active_by_category(C.AMOUNT)] == ["Early", "Late"]
        assert repository.count() == 3
        assert repository.count_active() == 2

    def test_changes_notify_listeners(self):
        """Save, deactivate and delete each notify listeners."""
        repository = InMemoryPatternRepository()
        events = []
        repository.add_listener(lambda: events.append(1))

        saved = repository.save(pattern("New", C.EMAIL, r"(\S+@\S+)"))
        repository.set_active(saved.id, False)
        repository.delete(saved.id)

        assert saved.id is not None
        assert len(events) == 3
        assert repository.delete(saved.id) is False

    def test_seed_skips_existing_names(self):
        """Seeding adds only missing names."""
        repository = InMemoryPatternRepository(default_patterns()[:3])

        added = repository.seed(default_patterns())

        assert added == len(default_patterns()) - 3
        assert repository.seed(default_patterns()) == 0


class TestSQLitePatternRepository:
    """Persistent repository."""

    @pytest.fixture
    def repository(self, tmp_path):
        return SQLitePatternRepository(tmp_path / "patterns.db")

    def test_seed_and_query(self, repository):
        """Seeded patterns are stored and ordered by priority."""
        repository.seed(default_patterns())

        amounts = repository.find_active_by_category(C.AMOUNT)

        assert repository.count() == len(default_patterns())
        assert [p.effective_priority for p in amounts] == sorted(p.effective_priority for p in amounts)
        assert all(p.id is not None for p in amounts)

    def test_round_trip(self, repository):
        """Stored patterns keep every attribute."""
        saved = repository.save(
            pattern("EuDate", C.INVOICE_DATE, r"(\d+\.\d+\.\d{4})", 4, 0.9, flags=2 | 8, date_format="%d.%m.%Y")
        )

        loaded = repository.find_by_name("EuDate")

        assert loaded == saved
        assert loaded.is_active is True

    def test_update_and_deactivate(self, repository):
        """Updates and activation changes persist and notify."""
        events = []
        repository.add_listener(lambda: events.append(1))
        saved = repository.save(pattern("Total", C.AMOUNT, r"total (\d+)", 10))

        repository.save(replace(saved, regex=r"sum (\d+)"))
        repository.set_active(saved.id, False)

        assert repository.find_by_name("Total").regex == r"sum (\d+)"
        assert repository.find_active_by_category(C.AMOUNT) == []
        assert len(events) == 3

    def test_delete(self, repository):
        """Deleting reports whether a row was removed."""
        saved = repository.save(pattern("Phone", C.PHONE, r"(\d{3}-\d{4})"))

        assert repository.delete(saved.id) is True
        assert repository.delete(saved.id) is False
        assert repository.count() == 0

    def test_duplicate_name_rejected(self, repository):
        """Pattern names are unique."""
        repository.save(pattern("Dup", C.EMAIL, "a"))

        with pytest.raises(DatabaseError):
            repository.save(pattern("Dup", C.EMAIL, "b"))

    def test_engine_over_sqlite(self, repository, sample_invoice_text):
        """The engine works unchanged on the persistent repository."""
        repository.seed(default_patterns())
        engine = PatternExtractionEngine(repository)

        assert engine.extract_invoice_number(sample_invoice_text).value == "INV-20260042"


class TestCreateRepository:
    """Repository factory."""

    def test_memory_seeded(self):
        """The default repository is in-memory and seeded."""
        repository = create_repository()

        assert isinstance(repository, InMemoryPatternRepository)
        assert repository.count() == len(default_patterns())

    def test_sqlite(self, tmp_path):
        """SQLite repositories are created at the given path."""
        repository = create_repository("sqlite", seed_defaults=False, db_path=tmp_path / "p.db")

        assert isinstance(repository, SQLitePatternRepository)
        assert repository.count() == 0

    def test_unknown_kind(self):
        """Unknown repository kinds are rejected."""
        with pytest.raises(ValueError):
            create_repository("mongodb", seed_defaults=False)
