"""Tests for configuration models and YAML loading."""

from pathlib import Path
from textwrap import dedent

import pytest
from pydantic import ValidationError

from src.core.config import (
    AutoApplyConfig,
    DatabaseConfig,
    NotificationConfig,
    RefreshConfig,
    ScoringConfig,
    Settings,
    SourceConfig,
)


class TestScoringConfig:
    def test_defaults(self) -> None:
        s = ScoringConfig()
        assert s.high_priority_points == 10
        assert s.medium_priority_points == 5
        assert s.low_priority_points == 2
        assert s.skill_points == 8
        assert "data scientist" in s.high_priority_keywords
        assert "sql" in s.medium_priority_keywords
        assert "engineer" in s.low_priority_keywords

    def test_keywords_normalized(self) -> None:
        s = ScoringConfig(high_priority_keywords=["  Rust ", "", "GO"])
        assert s.high_priority_keywords == ["rust", "go"]

    def test_negative_points_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ScoringConfig(skill_points=-1)

    def test_tiers_highest_first(self) -> None:
        tiers = ScoringConfig().tiers()
        assert [points for _, points in tiers] == [10, 5, 2]


class TestAutoApplyConfig:
    def test_defaults(self) -> None:
        a = AutoApplyConfig()
        assert a.match_threshold == 60
        assert a.apply_confidence == 70
        assert a.max_applications_per_run == 5
        assert a.candidate_window == 100
        assert a.preview_window == 50
        assert a.default_relevance_threshold == 50
        assert a.learned_min_relevance == 60
        assert a.min_keyword_overlap == 2

    def test_confidence_bounds(self) -> None:
        with pytest.raises(ValidationError):
            AutoApplyConfig(apply_confidence=101)

    def test_cap_min_one(self) -> None:
        with pytest.raises(ValidationError):
            AutoApplyConfig(max_applications_per_run=0)


class TestNotificationConfig:
    def test_no_default_recipient(self) -> None:
        assert NotificationConfig().default_email is None

    def test_blank_email_is_none(self) -> None:
        assert NotificationConfig(default_email="   ").default_email is None

    def test_email_stripped(self) -> None:
        n = NotificationConfig(default_email=" me@example.com ")
        assert n.default_email == "me@example.com"

    def test_invalid_email_raises(self) -> None:
        with pytest.raises(ValidationError, match="must be an email address"):
            NotificationConfig(default_email="not-an-email")


class TestSourceConfig:
    def test_name_required(self) -> None:
        with pytest.raises(ValidationError, match="source name must not be empty"):
            SourceConfig(name="  ", path="jobs.yaml")

    def test_name_stripped(self) -> None:
        assert SourceConfig(name=" sample ", path="jobs.yaml").name == "sample"


class TestDatabaseConfig:
    def test_default_path(self) -> None:
        assert DatabaseConfig().path == "data/jobs.db"


class TestSettings:
    def test_load_from_yaml(self, tmp_path: Path) -> None:
        yaml_content = dedent("""\
            database:
              path: data/test.db
            scoring:
              skill_points: 12
              high_priority_keywords: [Rust]
            auto_apply:
              max_applications_per_run: 2
            notifications:
              default_email: alerts@example.com
              lookback_hours: 24
            refresh:
              interval_hours: 3
            sources:
              - name: sample
                path: config/jobs.example.yaml
        """)
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml_content)

        settings = Settings.from_yaml(config_file)

        assert settings.database.path == "data/test.db"
        assert settings.scoring.skill_points == 12
        assert settings.scoring.high_priority_keywords == ["rust"]
        assert settings.auto_apply.max_applications_per_run == 2
        assert settings.notifications.default_email == "alerts@example.com"
        assert settings.notifications.lookback_hours == 24
        assert settings.refresh.interval_hours == 3
        assert len(settings.sources) == 1
        assert settings.sources[0].name == "sample"

    def test_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("")
        settings = Settings.from_yaml(config_file)
        assert settings.sources == []
        assert settings.refresh == RefreshConfig()
        assert settings.auto_apply == AutoApplyConfig()

    def test_file_not_found(self) -> None:
        with pytest.raises(FileNotFoundError):
            Settings.from_yaml("/nonexistent/path.yaml")

    def test_invalid_value_raises(self, tmp_path: Path) -> None:
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("auto_apply:\n  apply_confidence: 150\n")
        with pytest.raises(ValidationError):
            Settings.from_yaml(config_file)

    def test_load_example_settings(self) -> None:
        """The shipped example settings must be valid."""
        settings = Settings.from_yaml("config/settings.example.yaml")
        assert settings.auto_apply.apply_confidence == 70
        assert settings.notifications.default_email is None
        assert settings.sources[0].path == "config/jobs.example.yaml"
