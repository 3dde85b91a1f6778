"""
Tests for the environment sink.
"""

import os

import pytest

from envault.environ import set_env_map
from envault.providers import SetEnvError


class TestSetEnvMap:
    """Tests for first-write-wins application of a bundle."""

    def test_sets_new_keys(self):
        """Test that absent keys are set."""
        environ = {}

        applied = set_env_map({"A": "1", "B": "2"}, environ)

        assert environ == {"A": "1", "B": "2"}
        assert applied == ["A", "B"]

    def test_skips_existing_keys(self):
        """Test that present keys are left alone without error."""
        environ = {"A": "orig"}

        applied = set_env_map({"A": "new", "B": "2"}, environ)

        assert environ == {"A": "orig", "B": "2"}
        assert applied == ["B"]

    def test_empty_value_counts_as_set(self):
        """Test that a key set to an empty string is not overwritten."""
        environ = {"A": ""}

        set_env_map({"A": "new"}, environ)

        assert environ["A"] == ""

    def test_earlier_bundle_wins_like_preexisting_value(self):
        """Test that a key from an earlier bundle is treated like an original one."""
        environ = {"ORIGINAL": "orig"}

        set_env_map({"FIRST": "first"}, environ)
        set_env_map({"ORIGINAL": "second", "FIRST": "second"}, environ)

        assert environ == {"ORIGINAL": "orig", "FIRST": "first"}

    def test_writes_process_environment_by_default(self, unset_env):
        """Test that os.environ is the default target."""
        unset_env("ENVAULT_TEST_SINK")

        set_env_map({"ENVAULT_TEST_SINK": "value"})

        assert os.environ["ENVAULT_TEST_SINK"] == "value"

    def test_rejected_write_raises(self, unset_env):
        """Test that the platform rejecting a key is a set error."""
        unset_env("ENVAULT_TEST_SINK_BEFORE")

        with pytest.raises(SetEnvError) as exc_info:
            set_env_map({"ENVAULT_TEST_SINK_BEFORE": "kept", "BAD=KEY": "x"})

        assert "BAD=KEY" in str(exc_info.value)
        # Writes before the failing key are not rolled back
        assert os.environ["ENVAULT_TEST_SINK_BEFORE"] == "kept"
