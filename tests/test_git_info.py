"""Tests for source-control info."""

import subprocess
from unittest.mock import Mock, patch

from vrt.utils.git_info import SubprocessGitInfo


class TestSubprocessGitInfo:
    @patch("vrt.utils.git_info.subprocess.run")
    def test_reads_branch_and_commit(self, mock_run):
        mock_run.side_effect = [Mock(stdout="main\n"), Mock(stdout="abc123\n")]
        info = SubprocessGitInfo(cwd="/repo")

        assert info.branch() == "main"
        assert info.commit() == "abc123"
        assert mock_run.call_args_list[0].args[0] == ["git", "branch", "--show-current"]
        assert mock_run.call_args_list[1].kwargs["cwd"] == "/repo"

    @patch("vrt.utils.git_info.subprocess.run")
    def test_unknown_on_failure(self, mock_run):
        mock_run.side_effect = subprocess.CalledProcessError(128, ["git"])
        assert SubprocessGitInfo().branch() == "unknown"

    @patch("vrt.utils.git_info.subprocess.run", side_effect=FileNotFoundError("git"))
    def test_unknown_without_git(self, mock_run):
        assert SubprocessGitInfo().commit() == "unknown"

    @patch("vrt.utils.git_info.subprocess.run")
    def test_detached_head_is_unknown(self, mock_run):
        mock_run.return_value = Mock(stdout="\n")
        assert SubprocessGitInfo().branch() == "unknown"
