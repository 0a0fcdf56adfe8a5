#!/usr/bin/env python3
"""Tests for runner.py - end-to-end run orchestration.

Tests verify:
1. Stage order (load, preflight, compile, apply)
2. Nothing reaches the backend when any stage fails
3. Local override merging through a full run
4. Preflight skipping
"""

from unittest.mock import MagicMock

import pytest

from backends import DryRunBackend, PluginInstallError, VersionConstraintError
from config import MissingConfigError, load_settings
from hooks import HookRegistry, UnknownHookError
from operations import SetProviderProperty, TuneProvider
from runner import Runner
from validation import NoNodesDefinedError


def _backend(**kwargs):
    kwargs.setdefault('version', 'Vagrant 2.4.1')
    kwargs.setdefault('stream', MagicMock())
    return DryRunBackend(**kwargs)


class TestRunner:
    """Full pipeline runs."""

    def test_run_applies_all_nodes(self, project_dir):
        """A valid project compiles and applies every node in order."""
        backend = _backend(plugins=['vagrant-hostmanager'])
        runner = Runner(load_settings(root=str(project_dir)), backend)

        nodes = runner.run()

        assert [n.name for n in nodes] == ['web', 'db']
        assert backend.applied == nodes
        assert backend.requested_plugins == []

    def test_missing_plugins_installed(self, project_dir):
        backend = _backend()

        Runner(load_settings(root=str(project_dir)), backend).run()

        assert backend.requested_plugins == ['vagrant-hostmanager']

    def test_local_override_applied(self, project_dir):
        """vagrant.local.yaml values reach the compiled output."""
        (project_dir / 'vagrant.local.yaml').write_text(
            "nodes:\n  db:\n    memory: 4096\n"
        )
        backend = _backend(plugins=['vagrant-hostmanager'])

        nodes = Runner(load_settings(root=str(project_dir)), backend).run()

        db = nodes[1]
        tune = db.operations[-3]
        assert tune == TuneProvider('virtualbox', 4096, 2, 'db', 'ich9')

    def test_hooks_loaded_from_directory(self, project_dir):
        (project_dir / 'hooks').mkdir()
        (project_dir / 'hooks' / 'disk.py').write_text(
            "from operations import SetProviderProperty\n"
            "\n"
            "def add_disk(node):\n"
            "    node.add(SetProviderProperty('virtualbox', 'disk', '10GB'))\n"
        )
        (project_dir / 'vagrant.local.yaml').write_text(
            "nodes:\n  db:\n    external_functions: [add_disk]\n"
        )
        backend = _backend(plugins=['vagrant-hostmanager'])

        nodes = Runner(load_settings(root=str(project_dir)), backend).run()

        assert nodes[1].operations[-1] == SetProviderProperty('virtualbox', 'disk', '10GB')

    def test_missing_config_applies_nothing(self, tmp_path):
        backend = _backend()

        with pytest.raises(MissingConfigError):
            Runner(load_settings(root=str(tmp_path)), backend).run()

        assert backend.applied == []

    def test_no_nodes_applies_nothing(self, tmp_path):
        (tmp_path / 'vagrant.yaml').write_text("boxes: {}\nnodes: {}\n")
        backend = _backend()

        with pytest.raises(NoNodesDefinedError):
            Runner(load_settings(root=str(tmp_path)), backend).run()

        assert backend.applied == []

    def test_version_out_of_range_applies_nothing(self, project_dir):
        backend = _backend(version='Vagrant 3.1.0')

        with pytest.raises(VersionConstraintError):
            Runner(load_settings(root=str(project_dir)), backend).run()

        assert backend.applied == []
        assert backend.requested_plugins == []

    def test_plugin_failure_applies_nothing(self, project_dir):
        backend = MagicMock()
        backend.name = 'vagrant'
        backend.version.return_value = 'Vagrant 2.4.1'
        backend.installed_plugins.return_value = []
        backend.install_plugin.side_effect = PluginInstallError("Installation of plugin vagrant-hostmanager failed")

        with pytest.raises(PluginInstallError):
            Runner(load_settings(root=str(project_dir)), backend).run()

        backend.apply.assert_not_called()

    def test_unknown_hook_in_later_node_applies_nothing(self, project_dir):
        """A failure in the second node prevents the first from being applied."""
        (project_dir / 'vagrant.local.yaml').write_text(
            "nodes:\n  db:\n    external_functions: [missing_hook]\n"
        )
        backend = _backend(plugins=['vagrant-hostmanager'])

        with pytest.raises(UnknownHookError, match='missing_hook'):
            Runner(load_settings(root=str(project_dir)), backend, registry=HookRegistry()).run()

        assert backend.applied == []

    def test_skip_preflight(self, project_dir):
        """Skipping preflight ignores the backend version entirely."""
        backend = _backend(version='')

        nodes = Runner(load_settings(root=str(project_dir)), backend, skip_preflight=True).run()

        assert len(nodes) == 2
        assert backend.requested_plugins == []
