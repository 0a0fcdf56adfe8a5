#!/usr/bin/env python3
"""Tests for hooks.py - hook loading and dispatch.

Tests verify:
1. Loading hook functions from a directory
2. Missing directory handling
3. Dispatch order and unknown hook errors
4. Broken hook files
"""

import pytest

from compiler import NodeHandle
from document import NodeSpec
from hooks import HookLoadError, HookRegistry, UnknownHookError, dispatch_hooks, load_hooks
from operations import SetProviderProperty


def _handle(name='web'):
    return NodeHandle(name=name, spec=NodeSpec.from_dict(name, {}))


class TestHookRegistry:
    """HookRegistry lookups."""

    def test_register_and_get(self):
        registry = HookRegistry()

        def noop(node):
            pass

        registry.register('noop', noop)

        assert registry.get('noop') is noop
        assert 'noop' in registry
        assert len(registry) == 1

    def test_unknown_name_lists_available(self):
        registry = HookRegistry()
        registry.register('add_disk', lambda node: None)

        with pytest.raises(UnknownHookError, match='Unknown hook: missing. Available: add_disk'):
            registry.get('missing')

    def test_names_sorted(self):
        registry = HookRegistry()
        registry.register('b', lambda node: None)
        registry.register('a', lambda node: None)

        assert registry.names() == ['a', 'b']


class TestLoadHooks:
    """Loading hooks from a directory."""

    def test_missing_directory_yields_empty_registry(self, tmp_path):
        registry = load_hooks(tmp_path / 'hooks')

        assert len(registry) == 0

    def test_registers_public_functions(self, tmp_path):
        hooks_dir = tmp_path / 'hooks'
        hooks_dir.mkdir()
        (hooks_dir / 'disk.py').write_text(
            "from operations import SetProviderProperty\n"
            "\n"
            "def add_data_disk(node):\n"
            "    node.add(SetProviderProperty('virtualbox', 'disk', '10GB'))\n"
            "\n"
            "def _helper():\n"
            "    pass\n"
        )
        (hooks_dir / 'net.py').write_text(
            "def tag_network(node):\n"
            "    node.operations.clear()\n"
        )

        registry = load_hooks(hooks_dir)

        assert registry.names() == ['add_data_disk', 'tag_network']

    def test_imported_functions_not_registered(self, tmp_path):
        hooks_dir = tmp_path / 'hooks'
        hooks_dir.mkdir()
        (hooks_dir / 'paths.py').write_text(
            "from os.path import join\n"
            "\n"
            "def set_path(node):\n"
            "    pass\n"
        )

        registry = load_hooks(hooks_dir)

        assert 'join' not in registry
        assert 'set_path' in registry

    def test_underscore_files_skipped(self, tmp_path):
        hooks_dir = tmp_path / 'hooks'
        hooks_dir.mkdir()
        (hooks_dir / '_private.py').write_text("def hidden(node):\n    pass\n")

        assert 'hidden' not in load_hooks(hooks_dir)

    def test_broken_file_raises(self, tmp_path):
        hooks_dir = tmp_path / 'hooks'
        hooks_dir.mkdir()
        (hooks_dir / 'broken.py').write_text("def oops(:\n")

        with pytest.raises(HookLoadError, match='broken.py'):
            load_hooks(hooks_dir)

    def test_adds_to_existing_registry(self, tmp_path):
        hooks_dir = tmp_path / 'hooks'
        hooks_dir.mkdir()
        (hooks_dir / 'a.py').write_text("def from_file(node):\n    pass\n")
        registry = HookRegistry()
        registry.register('builtin', lambda node: None)

        result = load_hooks(hooks_dir, registry)

        assert result is registry
        assert registry.names() == ['builtin', 'from_file']


class TestDispatchHooks:
    """Invoking hooks on a node handle."""

    def test_runs_in_declared_order(self):
        calls = []
        registry = HookRegistry()
        registry.register('first', lambda node: calls.append(('first', node.name)))
        registry.register('second', lambda node: calls.append(('second', node.name)))

        dispatch_hooks(_handle('db'), ['second', 'first', 'second'], registry)

        assert calls == [('second', 'db'), ('first', 'db'), ('second', 'db')]

    def test_hook_mutates_handle(self):
        registry = HookRegistry()
        registry.register('add', lambda node: node.add(SetProviderProperty('parallels', 'x', 1)))
        handle = _handle()

        dispatch_hooks(handle, ['add'], registry)

        assert handle.operations == [SetProviderProperty('parallels', 'x', 1)]

    def test_unknown_hook_raises(self):
        with pytest.raises(UnknownHookError):
            dispatch_hooks(_handle(), ['nope'], HookRegistry())

    def test_hooks_before_unknown_still_ran(self):
        """Dispatch stops at the unknown name; no later hooks run."""
        calls = []
        registry = HookRegistry()
        registry.register('ok', lambda node: calls.append('ok'))

        with pytest.raises(UnknownHookError):
            dispatch_hooks(_handle(), ['ok', 'nope', 'ok'], registry)

        assert calls == ['ok']
