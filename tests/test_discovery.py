import asyncio
import subprocess
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from aliasync.discovery import (
    CommandDiscoveryTracker,
    DiscoveryState,
    PackageBackend,
    parse_help_subcommands,
    probe_subcommands,
)
from aliasync.models import CommandInfo, PackageSource


HELP_TEXT = """Usage: tool [OPTIONS] COMMAND [ARGS]...

  Do tool things.

Options:
  --version  Show the version and exit.
  --help     Show this message and exit.

Commands:
  add      Add a new thing
  list, ls  List things
  remove   Remove a thing and
           everything under it
  sync

Examples:
  tool add foo
"""


class FakeBackend(PackageBackend):
    def __init__(self, commands=None, error=None, subcommands=None, gate=None):
        self.commands = commands or []
        self.error = error
        self.subcommands = subcommands or {}
        self.gate = gate
        self.calls = 0

    async def get_package_commands(self, name, source):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.commands

    def get_subcommands(self, command):
        if command == "broken":
            raise RuntimeError("probe crashed")
        return self.subcommands.get(command, [])


class TestParseHelpSubcommands:

    def test_parses_commands_section(self):
        subs = parse_help_subcommands("tool", HELP_TEXT)

        assert [s.full_command for s in subs] == ["tool add", "tool list", "tool remove", "tool sync"]
        assert subs[0].description == "Add a new thing"
        assert subs[3].description is None

    def test_limit(self):
        assert len(parse_help_subcommands("tool", HELP_TEXT, limit=2)) == 2

    def test_no_section(self):
        assert parse_help_subcommands("tool", "Usage: tool [FILE]\n") == []


class TestProbeSubcommands:

    @patch("aliasync.discovery.subprocess.run")
    def test_probe_runs_help(self, mock_run):
        mock_run.return_value = Mock(stdout=HELP_TEXT, stderr="", returncode=0)

        subs = probe_subcommands("tool", timeout=1)

        assert mock_run.call_args[0][0] == ["tool", "--help"]
        assert mock_run.call_args[1]["timeout"] == 1
        assert len(subs) == 4

    @patch("aliasync.discovery.subprocess.run")
    def test_probe_falls_back_to_stderr(self, mock_run):
        mock_run.return_value = Mock(stdout="", stderr=HELP_TEXT, returncode=1)

        assert len(probe_subcommands("tool")) == 4

    @pytest.mark.parametrize("error", [
        FileNotFoundError("missing"),
        subprocess.TimeoutExpired(cmd="tool", timeout=1),
        PermissionError("denied"),
    ])
    def test_probe_failures_are_empty(self, error):
        with patch("aliasync.discovery.subprocess.run", side_effect=error):
            assert probe_subcommands("tool") == []


class TestTrackerState:

    def test_transitions(self):
        tracker = CommandDiscoveryTracker()
        key = ("rg", PackageSource.CARGO)

        assert tracker.state(*key) == DiscoveryState.NOT_REQUESTED
        tracker.set_package_loading(*key, True)
        assert tracker.state(*key) == DiscoveryState.LOADING
        tracker.set_package_commands(*key, [CommandInfo("rg", Path("/bin/rg"))])
        assert tracker.state(*key) == DiscoveryState.LOADED

        pkg = tracker.get_lazy_package(*key)
        assert (pkg.loading, pkg.loaded) == (False, True)

    def test_set_commands_replaces_existing_entry(self):
        tracker = CommandDiscoveryTracker()
        tracker.set_package_commands("rg", PackageSource.CARGO, [CommandInfo("rg", Path("/a"))])
        tracker.set_package_commands("rg", PackageSource.CARGO, [CommandInfo("rg2", Path("/b"))])

        assert len(tracker.package_commands) == 1
        assert tracker.package_commands[0].commands[0].name == "rg2"

    def test_identity_includes_source(self):
        tracker = CommandDiscoveryTracker()
        tracker.set_package_commands("black", PackageSource.PIP, [])

        assert tracker.state("black", PackageSource.PIPX) == DiscoveryState.NOT_REQUESTED

    def test_begin_guards_second_request(self):
        tracker = CommandDiscoveryTracker()

        assert tracker.begin("rg", PackageSource.CARGO) is True
        assert tracker.begin("rg", PackageSource.CARGO) is False
        tracker.set_package_commands("rg", PackageSource.CARGO, [])
        assert tracker.begin("rg", PackageSource.CARGO) is False

    def test_populate_orders_by_source_priority(self):
        tracker = CommandDiscoveryTracker()

        tracker.populate([
            ("vim", PackageSource.APT),
            ("black", PackageSource.PIP),
            ("rg", PackageSource.CARGO),
            ("httpie", PackageSource.PIPX),
            ("git", PackageSource.DNF),
        ])

        assert [p.name for p in tracker.lazy_packages] == ["rg", "httpie", "black", "vim", "git"]

    def test_populate_keeps_known_state(self):
        tracker = CommandDiscoveryTracker()
        tracker.populate([("rg", PackageSource.CARGO)])
        tracker.set_package_commands("rg", PackageSource.CARGO, [])

        tracker.populate([("rg", PackageSource.CARGO), ("fd", PackageSource.CARGO)])

        assert tracker.state("rg", PackageSource.CARGO) == DiscoveryState.LOADED
        assert tracker.state("fd", PackageSource.CARGO) == DiscoveryState.NOT_REQUESTED


class TestDiscover:

    @pytest.mark.asyncio
    async def test_discover_resolves_commands_and_subcommands(self):
        tracker = CommandDiscoveryTracker()
        backend = FakeBackend(
            commands=[("tool", "/usr/bin/tool"), ("other", Path("/usr/bin/other"))],
            subcommands={"tool": [("tool add", "Add"), ("tool rm", None)]},
        )

        entry = await tracker.discover("tool-pkg", PackageSource.PIPX, backend)

        assert [c.name for c in entry.commands] == ["tool", "other"]
        assert entry.commands[0].path == Path("/usr/bin/tool")
        assert [s.full_command for s in entry.commands[0].subcommands] == ["tool add", "tool rm"]
        assert entry.commands[1].subcommands == []
        assert tracker.state("tool-pkg", PackageSource.PIPX) == DiscoveryState.LOADED

    @pytest.mark.asyncio
    async def test_backend_failure_still_reaches_loaded(self):
        tracker = CommandDiscoveryTracker()
        backend = FakeBackend(error=RuntimeError("backend down"))

        entry = await tracker.discover("pkg", PackageSource.NPM, backend)

        assert entry.commands == []
        assert tracker.state("pkg", PackageSource.NPM) == DiscoveryState.LOADED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("malformed", [None, [("tool", None)], [("only-name",)], 42])
    async def test_malformed_backend_result_reaches_loaded(self, malformed):
        tracker = CommandDiscoveryTracker()
        backend = FakeBackend()
        backend.commands = malformed

        entry = await tracker.discover("pkg", PackageSource.CARGO, backend)

        assert entry.commands == []
        assert tracker.state("pkg", PackageSource.CARGO) == DiscoveryState.LOADED
        assert tracker.begin("pkg", PackageSource.CARGO) is False

    @pytest.mark.asyncio
    async def test_probe_failure_gives_no_subcommands(self):
        tracker = CommandDiscoveryTracker()
        backend = FakeBackend(commands=[("broken", "/bin/broken")])

        entry = await tracker.discover("pkg", PackageSource.CARGO, backend)

        assert entry.commands[0].subcommands == []

    @pytest.mark.asyncio
    async def test_probe_can_be_disabled(self):
        tracker = CommandDiscoveryTracker(probe_subcommands=False)
        backend = FakeBackend(commands=[("tool", "/bin/tool")], subcommands={"tool": [("tool x", None)]})

        entry = await tracker.discover("pkg", PackageSource.CARGO, backend)

        assert entry.commands[0].subcommands == []

    @pytest.mark.asyncio
    async def test_concurrent_requests_run_once(self):
        tracker = CommandDiscoveryTracker()
        gate = asyncio.Event()
        backend = FakeBackend(commands=[("tool", "/bin/tool")], gate=gate)

        first = asyncio.create_task(tracker.discover("pkg", PackageSource.CARGO, backend))
        await asyncio.sleep(0)
        second = await tracker.discover("pkg", PackageSource.CARGO, backend)
        assert tracker.state("pkg", PackageSource.CARGO) == DiscoveryState.LOADING
        gate.set()
        entry = await first

        assert second is None
        assert backend.calls == 1
        assert [c.name for c in entry.commands] == ["tool"]

    @pytest.mark.asyncio
    async def test_already_loaded_is_skipped(self):
        tracker = CommandDiscoveryTracker()
        tracker.set_package_commands("pkg", PackageSource.CARGO, [])
        backend = FakeBackend()

        assert await tracker.discover("pkg", PackageSource.CARGO, backend) is None
        assert backend.calls == 0

    @pytest.mark.asyncio
    async def test_manager_expand_package(self, make_manager):
        manager = make_manager(["bash"])
        manager.populate_lazy_packages([("pkg", PackageSource.PIP)])
        backend = FakeBackend(commands=[("tool", "/bin/tool")])

        entry = await manager.expand_package("pkg", PackageSource.PIP, backend)

        assert manager.package_commands == [entry]
        assert manager.get_lazy_package("pkg", PackageSource.PIP).loaded is True
