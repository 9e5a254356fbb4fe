"""
Tests for configuration loading
"""
import pytest
import yaml

from cloud_cost_optimizer.exceptions import ConfigurationError
from cloud_cost_optimizer.utils.config import ConfigManager, deep_merge, get_default_config


@pytest.fixture
def isolated_home(tmp_path, monkeypatch):
    """Point cwd, HOME and XDG_CONFIG_HOME at empty temp directories"""
    home = tmp_path / 'home'
    work = tmp_path / 'work'
    home.mkdir()
    work.mkdir()
    monkeypatch.setenv('HOME', str(home))
    monkeypatch.delenv('XDG_CONFIG_HOME', raising=False)
    monkeypatch.chdir(work)
    return home, work


def test_defaults_without_config_file(isolated_home):
    manager = ConfigManager()
    assert manager.loaded_from is None
    assert manager.config == get_default_config()
    assert manager.get('scan.batch_size') == 5


def test_explicit_file_merged_over_defaults(tmp_path, isolated_home):
    path = tmp_path / 'custom.yaml'
    path.write_text(yaml.safe_dump({'scan': {'min_savings': 25}, 'aws': {'profile': 'prod'}}))

    manager = ConfigManager(str(path))

    assert manager.get('scan.min_savings') == 25
    assert manager.get('scan.batch_size') == 5
    assert manager.get('aws.profile') == 'prod'


def test_search_order_prefers_working_directory(isolated_home):
    home, work = isolated_home
    (home / '.cloud-cost-optimizer.yaml').write_text('scan: {default_top: 3}')
    (work / '.cloud-cost-optimizer.yaml').write_text('scan: {default_top: 9}')

    assert ConfigManager().get('scan.default_top') == 9


def test_xdg_config_used_last(tmp_path, isolated_home, monkeypatch):
    xdg = tmp_path / 'xdg'
    (xdg / 'cloud-cost-optimizer').mkdir(parents=True)
    (xdg / 'cloud-cost-optimizer' / 'config.yaml').write_text('gcp: {project_id: from-xdg}')
    monkeypatch.setenv('XDG_CONFIG_HOME', str(xdg))

    assert ConfigManager().get('gcp.project_id') == 'from-xdg'


def test_missing_explicit_file(tmp_path):
    with pytest.raises(ConfigurationError):
        ConfigManager(str(tmp_path / 'nope.yaml'))


def test_invalid_yaml(tmp_path):
    path = tmp_path / 'bad.yaml'
    path.write_text('scan: [unclosed')
    with pytest.raises(ConfigurationError):
        ConfigManager(str(path))


def test_non_mapping_yaml(tmp_path):
    path = tmp_path / 'list.yaml'
    path.write_text('- a\n- b\n')
    with pytest.raises(ConfigurationError):
        ConfigManager(str(path))


def test_get_returns_default_for_unset_values(isolated_home):
    manager = ConfigManager()
    assert manager.get('aws.profile', 'default') == 'default'
    assert manager.get('no.such.key', 42) == 42


def test_deep_merge_does_not_mutate_base():
    base = {'a': {'b': 1, 'c': 2}}
    merged = deep_merge(base, {'a': {'b': 10}})
    assert merged == {'a': {'b': 10, 'c': 2}}
    assert base == {'a': {'b': 1, 'c': 2}}


def test_save_config_round_trip(tmp_path, isolated_home):
    path = ConfigManager.save_config({'scan': {'default_provider': 'gcp'}}, str(tmp_path / 'out.yaml'))
    assert ConfigManager(str(path)).get('scan.default_provider') == 'gcp'
