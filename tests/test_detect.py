"""Tests for local agent detection."""

import subprocess
from unittest.mock import Mock, patch

from arden.detect import AgentDetection, detect_agent, detect_all, detect_amp, detect_claude, get_version


@patch("arden.detect.shutil.which", return_value=None)
def test_detect_agent_not_installed(mock_which):
    """Test detection when the executable is not on PATH."""
    detection = detect_agent("claude")

    assert detection.present is False
    assert detection.bin is None
    assert detection.version is None


@patch("arden.detect.subprocess.run")
@patch("arden.detect.shutil.which", return_value="/usr/local/bin/claude")
def test_detect_agent_with_version(mock_which, mock_run):
    """Test detection reports the binary path and trimmed version."""
    mock_run.return_value = Mock(returncode=0, stdout="1.0.44 (Claude Code)\n")

    detection = detect_agent("claude")

    assert detection.present is True
    assert detection.bin == "/usr/local/bin/claude"
    assert detection.version == "1.0.44 (Claude Code)"
    assert mock_run.call_args.args[0] == ["/usr/local/bin/claude", "--version"]


@patch("arden.detect.subprocess.run")
def test_get_version_failures(mock_run):
    """Test that timeouts and non-zero exits yield no version."""
    mock_run.side_effect = subprocess.TimeoutExpired(cmd="amp", timeout=5)
    assert get_version("/bin/amp") is None

    mock_run.side_effect = None
    mock_run.return_value = Mock(returncode=1, stdout="error")
    assert get_version("/bin/amp") is None


@patch("arden.detect.shutil.which", return_value=None)
def test_detect_all(mock_which):
    """Test that every known agent is reported."""
    results = detect_all()

    assert set(results) == {"Claude Code", "Amp"}
    assert not any(d.present for d in results.values())


@patch("arden.detect.detect_agent")
def test_detect_all_probes_each_agent(mock_detect):
    """Test that detect_all runs the Claude Code and Amp probes."""
    mock_detect.side_effect = lambda cmd: AgentDetection(present=cmd == "claude", bin=f"/bin/{cmd}")

    results = detect_all()

    assert [c.args[0] for c in mock_detect.call_args_list] == ["claude", "amp"]
    assert results["Claude Code"].present is True
    assert results["Amp"].present is False
    assert detect_claude().bin == "/bin/claude"
    assert detect_amp().bin == "/bin/amp"
