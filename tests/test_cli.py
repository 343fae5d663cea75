#
# Copyright 2024 rtcbuild Project Authors. All rights reserved.
# Use of this source code is governed by a MIT-style
# license that can be found at
#
# https://opensource.org/license/MIT
#
# The above copyright notice and this permission
# notice shall be included in all copies or
# substantial portions of the Software.
import os

import pytest

import rtcbuild.build_scripts.source_manager as source_manager
import rtcbuild.commands.build as build_cmd
import rtcbuild.commands.check as check_cmd
import rtcbuild.commands.init as init_cmd
from rtcbuild.build_scripts.build_webrtc import BuildError
from rtcbuild.build_scripts.source_manager import SourceManager
from rtcbuild.build_scripts.targets import Target, TargetError
from rtcbuild.cli import Cli
from rtcbuild.commands.build import Build
from rtcbuild.commands.check import ToolChecker
from rtcbuild.commands.clean import Clean
from rtcbuild.commands.init import Init, parse_data_items
from rtcbuild.commands.sync import Sync
from rtcbuild.utils.context.context import CliContext


def test_command_list():
    assert Cli().get_command_list() == ["build", "check", "clean", "init", "sync"]


def test_cli_splits_subcommand_arguments():
    args = Cli().cli(["build", "linux", "arm", "-j", "4"])
    assert args.subcommand == "build"
    assert args.subcommand_argv == ["linux", "arm", "-j", "4"]


def test_cli_without_subcommand_exits(capsys):
    with pytest.raises(SystemExit) as exc:
        Cli().exec(CliContext(), Cli().cli([]))
    assert exc.value.code == 1
    assert "No command specified" in capsys.readouterr().out


def test_build_arguments():
    args = Build().cli(["android", "arm", "--commit", "abc", "-j", "8", "-y"])
    assert (args.os, args.arch) == ("android", "arm")
    assert args.commit == "abc"
    assert args.jobs == 8
    assert args.yes is True
    assert args.skip_sync is False


def test_resolve_targets_from_positionals():
    assert Build().resolve_targets(Build().cli(["linux", "arm"])) == [Target("linux", "arm")]


def test_resolve_targets_from_list():
    args = Build().cli(["--targets", "linux/amd64,darwin/amd64"])
    assert Build().resolve_targets(args) == [Target("linux", "amd64"), Target("darwin", "amd64")]


def test_resolve_targets_from_host(monkeypatch):
    monkeypatch.setattr(build_cmd, "detect_host_target", lambda: ("windows", "386"))
    assert Build().resolve_targets(Build().cli([])) == [Target("windows", "386")]


def test_resolve_targets_rejects_mixed_forms():
    with pytest.raises(TargetError):
        Build().resolve_targets(Build().cli(["linux", "amd64", "--targets", "linux/arm"]))


def test_resolve_targets_requires_arch():
    with pytest.raises(TargetError, match="Missing arch"):
        Build().resolve_targets(Build().cli(["linux"]))


@pytest.fixture
def pipeline(tmp_path, recorder, monkeypatch):
    """Build command with every external tool replaced by recorders."""
    monkeypatch.setenv("PATH", os.defpath)
    monkeypatch.setattr(source_manager, "run_command", recorder)
    monkeypatch.setattr(SourceManager, "has_local_changes", lambda self: False)
    stages = []

    def fake_build(target, config, jobs=None):
        stages.append(("build", target.label, jobs))

    def fake_headers(config, prune=True):
        stages.append(("headers", prune))
        return 0

    def fake_archive(target, config):
        stages.append(("archive", target.label))
        return config.lib_dir / target.library_name(config.lib_suffix)

    monkeypatch.setattr(build_cmd, "build_webrtc", fake_build)
    monkeypatch.setattr(build_cmd, "harvest_headers", fake_headers)
    monkeypatch.setattr(build_cmd, "archive_library", fake_archive)
    return stages


def test_build_runs_every_stage(tmp_path, recorder, pipeline, capsys):
    Build().exec(CliContext(str(tmp_path)), Build().cli(["linux", "arm", "-j", "2"]))

    assert [cmd[:2] for cmd in recorder.commands] == [
        ["git", "clone"],
        ["gclient", "config"],
        ["gclient", "sync"],
        ["./build/linux/sysroot_scripts/install-sysroot.py", "--arch=arm"],
        ["git", "checkout"],
    ]
    assert pipeline == [
        ("build", "linux/arm", 2),
        ("headers", True),
        ("archive", "linux/arm"),
    ]
    out = capsys.readouterr().out
    assert "libwebrtc-linux-arm-magic.a" in out
    assert "Build complete." in out


def test_build_several_targets_syncs_once(tmp_path, recorder, pipeline):
    Build().exec(
        CliContext(str(tmp_path)),
        Build().cli(["--targets", "linux/amd64,darwin/amd64", "--no-prune-headers"]),
    )

    assert sum(1 for cmd in recorder.commands if cmd[:2] == ["gclient", "sync"]) == 1
    assert sum(1 for cmd in recorder.commands if cmd[:2] == ["git", "checkout"]) == 2
    assert [stage for stage in pipeline if stage[0] == "archive"] == [
        ("archive", "linux/amd64"),
        ("archive", "darwin/amd64"),
    ]
    assert ("headers", False) in pipeline


def test_skip_sync_runs_no_source_commands(tmp_path, recorder, pipeline):
    Build().exec(CliContext(str(tmp_path)), Build().cli(["linux", "amd64", "--skip-sync"]))

    assert recorder.calls == []
    assert pipeline[0] == ("build", "linux/amd64", None)
    depot_tools = str(tmp_path.resolve() / "third_party" / "depot_tools")
    assert depot_tools in os.environ["PATH"].split(os.pathsep)


def test_failed_target_exits_non_zero(tmp_path, pipeline, monkeypatch, capsys):
    def failing_build(target, config, jobs=None):
        if target.arch == "386":
            raise BuildError("ninja failed")
        pipeline.append(("build", target.label, jobs))

    monkeypatch.setattr(build_cmd, "build_webrtc", failing_build)

    with pytest.raises(SystemExit) as exc:
        Build().exec(
            CliContext(str(tmp_path)),
            Build().cli(["--targets", "linux/386,linux/amd64", "--skip-sync"]),
        )

    assert exc.value.code == 1
    assert ("archive", "linux/amd64") in pipeline
    out = capsys.readouterr().out
    assert "linux/386 build failed: ninja failed" in out
    assert "Build complete." not in out


def test_unknown_target_exits_before_any_work(tmp_path, recorder, pipeline, capsys):
    with pytest.raises(SystemExit) as exc:
        Build().exec(CliContext(str(tmp_path)), Build().cli(["plan9", "amd64"]))

    assert exc.value.code == 1
    assert recorder.calls == []
    assert "Unsupported OS 'plan9'" in capsys.readouterr().out


def test_clean_dry_run_keeps_files(tmp_path, config):
    (config.out_dir / "obj").mkdir(parents=True)
    Clean().exec(CliContext(str(tmp_path)), Clean().cli(["--dry-run"]))
    assert config.out_dir.is_dir()


def test_clean_all(tmp_path, config):
    (config.out_dir / "obj").mkdir(parents=True)
    config.include_dir.mkdir()
    config.lib_dir.mkdir()
    (config.lib_dir / "libwebrtc-linux-amd64-magic.a").write_text("")

    Clean().exec(CliContext(str(tmp_path)), Clean().cli(["--all", "-y"]))

    assert not config.out_dir.exists()
    assert not config.include_dir.exists()
    assert not config.lib_dir.exists()
    assert config.webrtc_src.is_dir()


def test_clean_without_all_keeps_outputs(tmp_path, config):
    config.include_dir.mkdir()
    assert Clean().get_clean_paths(config, clean_all=False) == []
    assert Clean().get_clean_paths(config, clean_all=True) == [config.include_dir]


def test_parse_data_items():
    assert parse_data_items(["lib_suffix=custom", "prune_untracked_headers=False", "bad"]) == {
        "lib_suffix": "custom",
        "prune_untracked_headers": False,
    }
    assert parse_data_items(None) == {}


def test_init_renders_template(tmp_path, monkeypatch):
    calls = []
    monkeypatch.setattr(
        init_cmd, "run_copy", lambda src, dst, **kwargs: calls.append((src, dst, kwargs))
    )

    Init().exec(CliContext(str(tmp_path)), Init().cli(["--data", "webrtc_commit=abc"]))

    src, dst, kwargs = calls[0]
    assert src == init_cmd.TEMPLATE_PATH
    assert dst == str(tmp_path)
    assert kwargs["defaults"] is True
    assert kwargs["data"] == {"project_name": tmp_path.name, "webrtc_commit": "abc"}


def test_init_keeps_existing_file_when_declined(tmp_path, monkeypatch):
    (tmp_path / "RTCBUILD.toml").write_text("")
    monkeypatch.setattr("builtins.input", lambda prompt: "n")
    monkeypatch.setattr(
        init_cmd, "run_copy", lambda *a, **kw: pytest.fail("template should not render")
    )

    with pytest.raises(SystemExit) as exc:
        Init().exec(CliContext(str(tmp_path)), Init().cli([]))
    assert exc.value.code == 0


def test_sync_pins_commit_override(tmp_path, recorder, monkeypatch, capsys):
    monkeypatch.setenv("PATH", os.defpath)
    monkeypatch.setattr(source_manager, "run_command", recorder)

    Sync().exec(CliContext(str(tmp_path)), Sync().cli(["--commit", "cafebabe"]))

    assert recorder.commands[-1] == ["git", "checkout", "cafebabe"]
    assert "webrtc synced to" in capsys.readouterr().out


def test_sync_cancelled_exits(tmp_path, recorder, monkeypatch, capsys):
    monkeypatch.setenv("PATH", os.defpath)
    monkeypatch.setattr(source_manager, "run_command", recorder)
    monkeypatch.setattr(SourceManager, "has_local_changes", lambda self: True)
    monkeypatch.setattr("builtins.input", lambda prompt: "n")
    (tmp_path / "third_party" / "webrtc" / "src").mkdir(parents=True)

    with pytest.raises(SystemExit) as exc:
        Sync().exec(CliContext(str(tmp_path)), Sync().cli([]))

    assert exc.value.code == 1
    assert "*** Cancelled ***" in capsys.readouterr().out
    assert ["git", "reset", "--hard", "HEAD"] not in recorder.commands


def test_check_reports_missing_archiver(config, monkeypatch):
    monkeypatch.setattr(check_cmd.shutil, "which", lambda name, path=None: None)
    checker = ToolChecker(config)

    checker.check_target(Target("linux", "arm"))

    assert "arm-linux-gnueabihf-ar: Not found" in checker.errors
    assert checker.results["linux/arm"] == {"arm-linux-gnueabihf-ar": False}


def test_check_darwin_off_macos(config, monkeypatch):
    monkeypatch.setattr(check_cmd.shutil, "which", lambda name, path=None: f"/usr/bin/{name}")
    checker = ToolChecker(config)
    checker.current_os = "Linux"

    checks = checker.check_archiver(Target("darwin", "amd64"))

    assert checks == {"libtool": True, "strip": True, "host": False}
    assert checker.errors == ["darwin targets can only be built on macOS"]


def test_check_android_looks_for_ndk_ar(config):
    checker = ToolChecker(config)
    checks = checker.check_archiver(Target("android", "arm"))
    assert checks == {"ndk ar": False}
    assert checker.errors == []


@pytest.mark.parametrize("name", ["..", "."])
def test_clean_rejects_config_outside_out_directory(tmp_path, config, name, capsys):
    (config.webrtc_src / "api").mkdir(parents=True)
    (config.webrtc_src / "api" / "jsep.h").write_text("")

    with pytest.raises(SystemExit) as exc:
        Clean().exec(CliContext(str(tmp_path)), Clean().cli(["--config", name, "-y"]))

    assert exc.value.code == 1
    assert (config.webrtc_src / "api" / "jsep.h").is_file()
    assert "build.config is not a valid directory name" in capsys.readouterr().out


def test_build_passes_zero_jobs_through(tmp_path, pipeline):
    Build().exec(CliContext(str(tmp_path)), Build().cli(["linux", "amd64", "-j", "0", "--skip-sync"]))
    assert pipeline[0] == ("build", "linux/amd64", 0)


def test_build_rejects_negative_jobs():
    with pytest.raises(SystemExit) as exc:
        Build().cli(["linux", "amd64", "-j", "-1"])
    assert exc.value.code == 2
