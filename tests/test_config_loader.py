"""Tests for configuration loading, validation and CLI overrides."""

import argparse

import pytest

from trac_github_migrator.config_loader import ConfigLoader, get_nested

VALID_CONFIG = """
trac:
  database_url: sqlite:///trac.db
github:
  repo: owner/project
  token: ${TEST_GITHUB_TOKEN}
users:
  alice@example.org: alice
labels:
  type:
    defect: bug
migration:
  start_id: 10
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / 'config.yaml'
    path.write_text(VALID_CONFIG, encoding='utf-8')
    return path


def namespace(**overrides):
    values = dict(start_id=None, revmap=None, skip_closed=None, single_post=None,
                  safe_checks=None, dry_run=None, verbose=0, log_file=None)
    values.update(overrides)
    return argparse.Namespace(**values)


class TestLoad:
    def test_env_substitution_and_defaults(self, config_file, monkeypatch):
        monkeypatch.setenv('TEST_GITHUB_TOKEN', 'ghp_abc')
        config = ConfigLoader.load(str(config_file))

        assert config['github']['token'] == 'ghp_abc'
        assert config['github']['api_url'] == 'https://api.github.com'
        assert config['migration']['start_id'] == 10
        assert config['migration']['safe_checks'] is True
        assert config['migration']['poll_interval'] == 1.0
        ConfigLoader.validate(config)

    def test_unset_variable_fails_validation(self, config_file, monkeypatch):
        monkeypatch.delenv('TEST_GITHUB_TOKEN', raising=False)
        config = ConfigLoader.load(str(config_file))

        with pytest.raises(ValueError, match='TEST_GITHUB_TOKEN'):
            ConfigLoader.validate(config)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigLoader.load(str(tmp_path / 'missing.yaml'))

    def test_non_mapping_document(self, tmp_path):
        path = tmp_path / 'config.yaml'
        path.write_text('- just\n- a list\n', encoding='utf-8')

        with pytest.raises(ValueError):
            ConfigLoader.load(str(path))


class TestValidate:
    def base(self):
        return ConfigLoader.apply_defaults({
            'trac': {'database_url': 'sqlite:///trac.db'},
            'github': {'repo': 'owner/project', 'token': 't'},
        })

    def test_minimal_config_is_valid(self):
        ConfigLoader.validate(self.base())

    @pytest.mark.parametrize('path, value, message', [
        ('trac.database_url', '', 'trac.database_url'),
        ('github.repo', 'project-only', 'owner/name'),
        ('github.api_url', 'ftp://example.org', 'http or https'),
        ('migration.safe_checks', 'yes', 'boolean'),
        ('migration.start_id', 0, 'positive integer'),
        ('migration.poll_interval', -1, 'poll_interval'),
        ('migration.attachment_url', 'files.example.org', 'attachment_url'),
    ])
    def test_invalid_values(self, path, value, message):
        config = self.base()
        section, key = path.split('.')
        config[section][key] = value

        with pytest.raises(ValueError, match=message):
            ConfigLoader.validate(config)

    def test_labels_must_be_nested_mappings(self):
        config = self.base()
        config['labels'] = {'type': ['bug']}

        with pytest.raises(ValueError, match='labels.type'):
            ConfigLoader.validate(config)


class TestMergeWithArgs:
    def test_flags_override_file(self):
        config = ConfigLoader.apply_defaults({'migration': {'safe_checks': True, 'start_id': 3}})
        merged = ConfigLoader.merge_with_args(
            config, namespace(start_id=8, revmap='map.txt', safe_checks=False, dry_run=True, verbose=2)
        )

        assert merged['migration']['start_id'] == 8
        assert merged['migration']['revmap_path'] == 'map.txt'
        assert merged['migration']['safe_checks'] is False
        assert merged['migration']['dry_run'] is True
        assert merged['logging']['level'] == 'DEBUG'
        assert config['migration']['safe_checks'] is True

    def test_absent_flags_keep_file_values(self):
        config = ConfigLoader.apply_defaults({'migration': {'skip_closed': True}})
        merged = ConfigLoader.merge_with_args(config, namespace())

        assert merged['migration']['skip_closed'] is True
        assert merged['migration']['start_id'] is None


def test_get_nested():
    config = {'a': {'b': {'c': 1}}}

    assert get_nested(config, 'a.b.c') == 1
    assert get_nested(config, 'a.x', 'default') == 'default'
    assert get_nested(config, 'a.b.c.d') is None
