"""Tests for billimport.config: YAML configuration loader."""

import pytest

from billimport.categorize.matcher import CategoryRule
from billimport.config import DEFAULT_CONFIG_DIR, Config


def _write_config(tmp_path, parsers="skip_statuses: [已退款]\n", categories="rules: {}\n"):
    (tmp_path / "parsers.yaml").write_text(parsers, encoding="utf-8")
    (tmp_path / "categories.yaml").write_text(categories, encoding="utf-8")
    return tmp_path


class TestConfigInit:
    def test_defaults_to_packaged_dir(self, monkeypatch):
        monkeypatch.delenv("BILLIMPORT_CONFIG_DIR", raising=False)
        config = Config()
        assert config.config_dir == DEFAULT_CONFIG_DIR

    def test_env_var_overrides_dir(self, tmp_path, monkeypatch):
        _write_config(tmp_path)
        monkeypatch.setenv("BILLIMPORT_CONFIG_DIR", str(tmp_path))
        assert Config().config_dir == tmp_path

    def test_raises_on_missing_directory(self):
        with pytest.raises(FileNotFoundError, match="Config directory not found"):
            Config("/nonexistent/path")

    def test_raises_on_file_not_directory(self, tmp_path):
        f = tmp_path / "not_a_dir.yaml"
        f.write_text("test: true")
        with pytest.raises(FileNotFoundError, match="Config directory not found"):
            Config(f)

    def test_raises_on_missing_file(self, tmp_path):
        config = Config(tmp_path)
        with pytest.raises(FileNotFoundError, match="parsers.yaml"):
            _ = config.parsers

    def test_raises_on_invalid_yaml(self, tmp_path):
        _write_config(tmp_path, parsers="skip_statuses: [unclosed\n")
        with pytest.raises(ValueError, match="Invalid YAML"):
            _ = Config(tmp_path).parsers

    def test_raises_on_empty_file(self, tmp_path):
        _write_config(tmp_path, parsers="")
        with pytest.raises(ValueError, match="Empty config file"):
            _ = Config(tmp_path).parsers

    def test_lazy_loading_and_cache(self):
        config = Config(DEFAULT_CONFIG_DIR)
        assert config._parsers is None
        first = config.parsers
        assert config.parsers is first


class TestParserSettings:
    def test_skip_lists(self):
        config = Config(DEFAULT_CONFIG_DIR)
        assert "已全额退款" in config.skip_statuses
        assert "零钱提现" in config.skip_types

    def test_limits(self):
        config = Config(DEFAULT_CONFIG_DIR)
        assert config.max_input_bytes == 10485760
        assert config.max_rows == 10000
        assert config.detect_scan_lines == 30

    def test_limits_default_when_absent(self, tmp_path):
        config = Config(_write_config(tmp_path))
        assert config.max_input_bytes == 10 * 1024 * 1024
        assert config.max_rows == 10000
        assert config.skip_types == ()


class TestCategoryRules:
    def test_expense_rules_in_file_order(self):
        rules = Config(DEFAULT_CONFIG_DIR).expense_rules
        assert rules[0].category_name == "餐饮美食"
        assert rules[-1].category_name == "转账支出"
        assert all(isinstance(r, CategoryRule) for r in rules)

    def test_numeric_keywords_are_strings(self):
        rules = Config(DEFAULT_CONFIG_DIR).expense_rules
        transport = next(r for r in rules if r.category_name == "交通出行")
        assert "12306" in transport.keywords

    def test_income_rules(self):
        names = [r.category_name for r in Config(DEFAULT_CONFIG_DIR).income_rules]
        assert names[:2] == ["工资薪酬", "奖金补贴"]

    def test_incomplete_rules_skipped(self, tmp_path):
        _write_config(tmp_path, categories=(
            "rules:\n"
            "  expense:\n"
            "    - category: 餐饮美食\n"
            "    - keywords: [外卖]\n"
            "    - category: 交通出行\n"
            "      keywords: [滴滴]\n"
        ))
        rules = Config(tmp_path).expense_rules
        assert [r.category_name for r in rules] == ["交通出行"]

    def test_fallback_names(self):
        fallbacks = Config(DEFAULT_CONFIG_DIR).fallback_names
        assert fallbacks.other_expense == "其他支出"
        assert fallbacks.other_income == "其他收入"
        assert fallbacks.other == "其他"
        assert fallbacks.uncategorized == "未分类"

    def test_rule_tables_bundle(self):
        tables = Config(DEFAULT_CONFIG_DIR).rule_tables
        assert tables.expense and tables.income
        assert tables.fallbacks.uncategorized == "未分类"
