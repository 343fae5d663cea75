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
from rtcbuild.build_scripts.source_manager import (
    ANDROID_GCLIENT_TARGET_OS,
    SourceManager,
    SourceSyncError,
    SyncCancelled,
)
from rtcbuild.build_scripts.targets import resolve_target

COMMIT = "88f5d9180eae78a6162cccd78850ff416eb82483"


@pytest.fixture
def manager(config, recorder, monkeypatch):
    monkeypatch.setattr(source_manager, "run_command", recorder)
    monkeypatch.setenv("PATH", os.defpath)
    return SourceManager(config)


def test_prepare_directories(manager, config):
    manager.prepare_directories()
    assert config.third_party_dir.is_dir()
    assert config.include_dir.is_dir()
    assert config.lib_dir.is_dir()


def test_depot_tools_is_cloned_and_added_to_path(manager, config, recorder):
    manager.sync_depot_tools()

    assert recorder.commands == [
        ["git", "clone", config.depot_tools_repo, str(config.depot_tools_dir)]
    ]
    assert str(config.depot_tools_dir) in os.environ["PATH"].split(os.pathsep)


def test_existing_depot_tools_is_rebased(manager, config, recorder):
    config.depot_tools_dir.mkdir(parents=True)
    manager.sync_depot_tools()
    assert recorder.calls == [(["git", "pull", "--rebase"], str(config.depot_tools_dir))]


def test_first_webrtc_sync_configures_gclient(manager, config, recorder):
    manager.sync_webrtc()

    webrtc_dir = str(config.webrtc_dir)
    assert recorder.calls == [
        (["gclient", "config", "--name", "src", config.webrtc_repo], webrtc_dir),
        (["gclient", "sync", "--with_branch_heads", "-r", COMMIT], webrtc_dir),
    ]


def test_webrtc_sync_without_branch_heads(config, recorder, monkeypatch):
    monkeypatch.setattr(source_manager, "run_command", recorder)
    config.with_branch_heads = False
    config.webrtc_src.mkdir(parents=True)
    manager = SourceManager(config)
    monkeypatch.setattr(manager, "has_local_changes", lambda: False)

    manager.sync_webrtc()
    assert recorder.commands == [["gclient", "sync", "-r", COMMIT]]


def test_clean_checkout_is_synced_without_prompt(manager, config, recorder, monkeypatch):
    config.webrtc_src.mkdir(parents=True)
    monkeypatch.setattr(manager, "has_local_changes", lambda: False)
    manager.input_func = lambda prompt: pytest.fail("unexpected prompt")

    manager.sync_webrtc()
    assert recorder.commands == [["gclient", "sync", "--with_branch_heads", "-r", COMMIT]]


def test_local_changes_are_reset_when_confirmed(manager, config, recorder, monkeypatch):
    config.webrtc_src.mkdir(parents=True)
    monkeypatch.setattr(manager, "has_local_changes", lambda: True)
    prompts = []
    manager.input_func = lambda prompt: prompts.append(prompt) or "y"

    manager.sync_webrtc()

    assert "Reset them? (y/N)" in prompts[0]
    assert recorder.calls[0] == (["git", "reset", "--hard", "HEAD"], str(config.webrtc_src))
    assert recorder.commands[1][:2] == ["gclient", "sync"]


@pytest.mark.parametrize("answer", ["", "n", "Y", "yes"])
def test_declined_reset_cancels_the_sync(manager, config, recorder, monkeypatch, answer):
    config.webrtc_src.mkdir(parents=True)
    monkeypatch.setattr(manager, "has_local_changes", lambda: True)
    manager.input_func = lambda prompt: answer

    with pytest.raises(SyncCancelled, match="Cancelled"):
        manager.sync_webrtc()
    assert recorder.calls == []


def test_assume_yes_resets_without_prompt(config, recorder, monkeypatch):
    monkeypatch.setattr(source_manager, "run_command", recorder)
    config.webrtc_src.mkdir(parents=True)
    manager = SourceManager(
        config, assume_yes=True, input_func=lambda prompt: pytest.fail("unexpected prompt")
    )
    monkeypatch.setattr(manager, "has_local_changes", lambda: True)

    manager.sync_webrtc()
    assert recorder.commands[0] == ["git", "reset", "--hard", "HEAD"]


def test_webrtc_dir_without_src_fails(manager, config):
    config.webrtc_dir.mkdir(parents=True)
    with pytest.raises(SourceSyncError):
        manager.sync_webrtc()


def test_has_local_changes_uses_diff_index(manager, config, monkeypatch):
    seen = []

    class Result:
        returncode = 1

    def fake_run(args, cwd=None):
        seen.append((args, cwd))
        return Result()

    monkeypatch.setattr(source_manager.subprocess, "run", fake_run)
    assert manager.has_local_changes() is True
    assert seen == [(["git", "diff-index", "--quiet", "HEAD", "--"], str(config.webrtc_src))]


def test_android_deps_add_target_os_after_gclient_config(manager, config, recorder):
    config.webrtc_src.mkdir(parents=True)
    gclient_file = config.webrtc_dir / ".gclient"
    snapshots = []

    def fake_gclient(args, cwd):
        if args[1] == "config":
            # gclient config rewrites .gclient from scratch
            gclient_file.write_text("solutions = []")
        elif args[1] == "sync":
            snapshots.append(gclient_file.read_text())

    recorder.side_effects["gclient"] = fake_gclient

    manager.install_platform_deps(resolve_target("android", "arm"))
    manager.install_platform_deps(resolve_target("android", "arm"))

    expected = "solutions = []\n" + ANDROID_GCLIENT_TARGET_OS + "\n"
    assert snapshots == [expected, expected]
    assert gclient_file.read_text() == expected
    src = str(config.webrtc_src)
    assert recorder.calls[:5] == [
        (["gclient", "config", "--name", "src", config.webrtc_repo], str(config.webrtc_dir)),
        (["gclient", "sync", "--with_branch_heads", "-r", COMMIT], str(config.webrtc_dir)),
        (["./build/install-build-deps-android.sh"], src),
        (["gclient", "runhooks"], src),
        (["gclient", "config", "--name", "src", config.webrtc_repo], str(config.webrtc_dir)),
    ]


def test_linux_arm_fetches_sysroot(manager, config, recorder):
    manager.install_platform_deps(resolve_target("linux", "arm"))
    assert recorder.calls == [
        (
            ["./build/linux/sysroot_scripts/install-sysroot.py", "--arch=arm"],
            str(config.webrtc_src),
        )
    ]


@pytest.mark.parametrize("os_name,arch", [("linux", "amd64"), ("darwin", "amd64"), ("windows", "386")])
def test_other_targets_need_no_platform_deps(manager, recorder, os_name, arch):
    manager.install_platform_deps(resolve_target(os_name, arch))
    assert recorder.calls == []


def test_checkout_and_clean(manager, config, recorder):
    (config.out_dir / "obj").mkdir(parents=True)

    manager.checkout_pinned_commit()
    assert manager.clean_output() is True

    assert recorder.calls == [(["git", "checkout", COMMIT], str(config.webrtc_src))]
    assert not config.out_dir.exists()
    assert manager.clean_output() is False


def test_command_failure_becomes_sync_error(manager, recorder):
    recorder.failing["git"] = 128
    with pytest.raises(SourceSyncError, match="exit code 128"):
        manager.sync_depot_tools()


def test_sync_all_order(manager, recorder):
    manager.sync_all()
    assert [cmd[:2] for cmd in recorder.commands] == [
        ["git", "clone"],
        ["gclient", "config"],
        ["gclient", "sync"],
        ["git", "checkout"],
    ]


def test_depot_tools_already_on_path_is_not_added_again(manager, config, monkeypatch):
    path = os.pathsep.join([os.defpath, str(config.depot_tools_dir)])
    monkeypatch.setenv("PATH", path)

    manager.sync_depot_tools()
    manager.sync_depot_tools()

    assert os.environ["PATH"] == path
