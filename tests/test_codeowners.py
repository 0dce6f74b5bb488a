"""Tests for CODEOWNERS parsing, local loading and the rule cache."""

import asyncio
import os
from unittest.mock import AsyncMock, patch

import pytest

from ownergate.codeowners import (
    RuleCache,
    RuleFileNotFound,
    fresh_rules_forced,
    load_rules_from_directory,
    load_rules_from_file,
    parse_rules,
)
from ownergate.models import OwnershipRule


SAMPLE = """\
# Global owners
* @org/core

# Frontend
*.js    @alice @org/frontend
/docs/  @bob

/src/utils.js @carol
"""


class TestParseRules:
    def test_rules_in_file_order(self):
        rules = parse_rules(SAMPLE)
        assert [r.pattern for r in rules.rules] == ["*", "*.js", "/docs/", "/src/utils.js"]
        assert rules.rules[1] == OwnershipRule(pattern="*.js", owners=("@alice", "@org/frontend"))
        assert rules.warnings == ()

    def test_comments_and_blank_lines_skipped(self):
        rules = parse_rules("\n   \n# only a comment\n\t# indented comment\n")
        assert len(rules) == 0
        assert rules.warnings == ()

    def test_pattern_without_owners_is_skipped_with_warning(self):
        rules = parse_rules("*.md\n*.py @alice\n")
        assert [r.pattern for r in rules.rules] == ["*.py"]
        assert rules.warnings == ("Invalid CODEOWNERS line: *.md",)

    def test_tabs_and_repeated_spaces_separate_tokens(self):
        rules = parse_rules("src/\t\t@alice    @bob\n")
        assert rules.rules[0].owners == ("@alice", "@bob")

    def test_surrounding_whitespace_ignored(self):
        rules = parse_rules("   *.go   @gopher   \r\n")
        assert rules.rules[0] == OwnershipRule(pattern="*.go", owners=("@gopher",))

    def test_owner_handles_kept_verbatim(self):
        rules = parse_rules("* @Org/Team user@example.com\n")
        assert rules.rules[0].owners == ("@Org/Team", "user@example.com")

    def test_empty_input(self):
        rules = parse_rules("")
        assert len(rules) == 0
        assert rules.raw_text == ""

    def test_parsing_is_deterministic(self):
        assert parse_rules(SAMPLE) == parse_rules(SAMPLE)

    def test_to_dict(self):
        d = parse_rules("*.py @alice\nbad\n").to_dict()
        assert d["rules"] == [{"pattern": "*.py", "owners": ["@alice"]}]
        assert d["warnings"] == ["Invalid CODEOWNERS line: bad"]


class TestLocalLoading:
    def test_first_candidate_wins(self, tmp_path):
        (tmp_path / ".github").mkdir()
        (tmp_path / ".github" / "CODEOWNERS").write_text("* @from-github-dir\n")
        (tmp_path / "CODEOWNERS").write_text("* @from-root\n")
        rules = load_rules_from_directory(tmp_path)
        assert rules.rules[0].owners == ("@from-github-dir",)

    def test_falls_back_to_later_candidates(self, tmp_path):
        (tmp_path / ".CODEOWNERS").write_text("* @hidden\n")
        rules = load_rules_from_directory(tmp_path)
        assert rules.rules[0].owners == ("@hidden",)

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(RuleFileNotFound) as exc_info:
            load_rules_from_directory(tmp_path)
        assert ".github/CODEOWNERS" in str(exc_info.value)
        assert "CODEOWNERS file not found" in str(exc_info.value)

    def test_load_explicit_file(self, tmp_path):
        p = tmp_path / "owners.txt"
        p.write_text("*.py @alice\n")
        assert len(load_rules_from_file(p)) == 1

    def test_load_explicit_missing_file(self, tmp_path):
        with pytest.raises(RuleFileNotFound):
            load_rules_from_file(tmp_path / "nope")


class TestRuleCache:
    @pytest.mark.asyncio
    async def test_loads_once_per_key(self):
        cache = RuleCache()
        loader = AsyncMock(return_value="* @alice\n")
        first = await cache.get_or_load("acme/widgets@abc", loader)
        second = await cache.get_or_load("acme/widgets@abc", loader)
        assert first is second
        loader.assert_awaited_once()
        assert "acme/widgets@abc" in cache

    @pytest.mark.asyncio
    async def test_distinct_keys_load_separately(self):
        cache = RuleCache()
        loader = AsyncMock(side_effect=["* @alice\n", "* @bob\n"])
        a = await cache.get_or_load("acme/widgets@1", loader)
        b = await cache.get_or_load("acme/widgets@2", loader)
        assert a.rules[0].owners == ("@alice",)
        assert b.rules[0].owners == ("@bob",)
        assert len(cache) == 2

    @pytest.mark.asyncio
    async def test_fresh_reload_replaces_entry(self):
        cache = RuleCache()
        loader = AsyncMock(side_effect=["* @alice\n", "* @bob\n"])
        await cache.get_or_load("k", loader)
        reloaded = await cache.get_or_load("k", loader, fresh=True)
        assert reloaded.rules[0].owners == ("@bob",)
        assert cache.get("k") is reloaded

    @pytest.mark.asyncio
    async def test_loader_error_is_not_cached(self):
        cache = RuleCache()
        loader = AsyncMock(side_effect=RuleFileNotFound())
        with pytest.raises(RuleFileNotFound):
            await cache.get_or_load("k", loader)
        assert "k" not in cache

    @pytest.mark.asyncio
    async def test_concurrent_misses_agree_on_one_entry(self):
        cache = RuleCache()

        async def loader():
            await asyncio.sleep(0)
            return "* @alice\n"

        results = await asyncio.gather(*(cache.get_or_load("k", loader) for _ in range(5)))
        assert all(r is results[0] for r in results)
        assert len(cache) == 1

    def test_put_keeps_first_entry(self):
        cache = RuleCache()
        first = cache.put("k", "* @alice\n")
        second = cache.put("k", "* @bob\n")
        assert second is first

    def test_invalidate_one_and_all(self):
        cache = RuleCache()
        cache.put("a", "* @alice\n")
        cache.put("b", "* @bob\n")
        cache.invalidate("a")
        assert "a" not in cache and "b" in cache
        cache.invalidate()
        assert len(cache) == 0

    def test_fresh_rules_env(self):
        assert fresh_rules_forced() is False
        with patch.dict(os.environ, {"OWNERGATE_FRESH_RULES": "1"}):
            assert fresh_rules_forced() is True
