#!/usr/bin/env python3
"""Tests for common.py - shared utilities.

Tests verify:
1. run_command execution and error handling
2. Timeout and missing-executable behavior
3. FatalError as the base of halting errors
"""

import os

import pytest

from backends import PluginInstallError, VersionConstraintError
from common import FatalError, run_command
from config import ConfigError
from hooks import HookLoadError, UnknownHookError


class TestRunCommand:
    """Test run_command utility."""

    def test_returns_success_tuple(self):
        """Should return (returncode, stdout, stderr) on success."""
        rc, stdout, stderr = run_command(['echo', 'hello'])
        assert rc == 0
        assert 'hello' in stdout
        assert stderr == ''

    def test_returns_failure_tuple(self):
        """Should return non-zero returncode on failure."""
        rc, stdout, stderr = run_command(['false'])
        assert rc != 0

    def test_captures_stderr(self):
        """Should capture stderr."""
        rc, stdout, stderr = run_command(['sh', '-c', 'echo error >&2'])
        assert 'error' in stderr

    def test_respects_cwd(self, tmp_path):
        """Should run command in specified directory."""
        (tmp_path / 'marker.txt').write_text('found')
        rc, stdout, stderr = run_command(['cat', 'marker.txt'], cwd=tmp_path)
        assert rc == 0
        assert 'found' in stdout

    def test_timeout_returns_error(self):
        """Should return error on timeout."""
        rc, stdout, stderr = run_command(['sleep', '10'], timeout=1)
        assert rc == -1
        assert 'timed out' in stderr.lower()

    def test_missing_executable(self):
        """Should report a missing executable instead of raising."""
        rc, stdout, stderr = run_command(['boxfile-no-such-binary'])
        assert rc == -1
        assert stderr == 'Command not found: boxfile-no-such-binary'

    def test_passes_env_vars(self):
        """Should pass custom environment variables."""
        custom_env = os.environ.copy()
        custom_env['TEST_VAR'] = 'test_value'
        rc, stdout, stderr = run_command(['sh', '-c', 'echo $TEST_VAR'], env=custom_env)
        assert rc == 0
        assert 'test_value' in stdout


class TestFatalError:
    """Every halting error derives from FatalError."""

    @pytest.mark.parametrize('error_class', [
        ConfigError,
        UnknownHookError,
        HookLoadError,
        PluginInstallError,
        VersionConstraintError,
    ])
    def test_subclass(self, error_class):
        assert issubclass(error_class, FatalError)
