"""End-to-end tests for the pipeline and CLI."""

import json
from dataclasses import replace

import pytest
from conftest import FakeRunner, failed

from repostats import main as main_module
from repostats.crawler.identity import MalformedURLError
from repostats.main import _build_parser, main, run

URL = "https://github.com/org1/repo1.git"


def _clone_into(path):
    path.mkdir(parents=True)
    (path / "main.go").write_text("package main\n")


def test_first_run_clones_measures_and_caches(settings, cloc_output):
    runner = FakeRunner({("cloc",): cloc_output}, on_clone=_clone_into)

    report = run(URL, settings, runner=runner)

    assert report.identity.organization == "org1"
    assert report.sync.working_copy == settings.repos_path / "org1-repo1"
    assert report.sync.cloned is True
    assert report.stats.line_count == 530
    assert not report.errored

    cache_file = settings.cache_path / "org1" / "stats.json"
    assert json.loads(cache_file.read_text())["repo1"]["loc"] == 530


def test_second_run_syncs_existing_copy(settings, cloc_output):
    run(URL, settings, runner=FakeRunner({("cloc",): cloc_output}, on_clone=_clone_into))
    runner = FakeRunner({
        ("git", "symbolic-ref"): "origin/main\n",
        ("git", "pull"): "Already up to date.\n",
        ("cloc",): "",
    })

    report = run(URL, settings, runner=runner)

    assert ("git", "clone") not in [c[:2] for c in runner.commands]
    assert report.sync.up_to_date is True
    assert report.stats.from_cache is True
    assert report.stats.line_count == 530


def test_failures_from_every_stage_are_accumulated(settings):
    runner = FakeRunner({
        ("git", "clone"): failed("fatal: repository not found"),
        ("cloc",): failed("cloc: cannot open"),
    })

    report = run(URL, settings, runner=runner)

    assert report.errored
    assert len(report.outcome.failures) == 2
    assert report.summary() == {"loc": 0, "pls": []}


def test_small_working_copy_is_cleaned_up(settings, cloc_output):
    settings = replace(settings, skip_cleanup=False)
    runner = FakeRunner({("cloc",): cloc_output}, on_clone=_clone_into)

    report = run(URL, settings, runner=runner)

    assert report.cleaned is True
    assert not report.sync.working_copy.exists()
    assert (settings.cache_path / "org1" / "stats.json").exists()


def test_malformed_url_fails_before_side_effects(settings):
    with pytest.raises(MalformedURLError):
        run("not a url", settings, runner=FakeRunner())
    assert not settings.cache_path.exists()
    assert not settings.repos_path.exists()


@pytest.mark.parametrize(
    ("url", "follow_hierarchy"),
    [
        ("https://github.com/org/a/../../../../victim", False),
        ("https://github.com/org/a/../../../../victim", True),
        ("https://github.com/org//victim", True),
    ],
)
def test_working_copy_outside_repos_root_is_refused(settings, tmp_path, url, follow_hierarchy):
    victim = tmp_path / "victim"
    victim.mkdir()
    (victim / "keep.txt").write_text("keep")
    settings = replace(settings, skip_cleanup=False, force_cleanup=True, follow_hierarchy=follow_hierarchy)
    runner = FakeRunner()

    with pytest.raises(MalformedURLError):
        run(url, settings, runner=runner)

    assert (victim / "keep.txt").read_text() == "keep"
    assert runner.commands == []
    assert not settings.cache_path.exists()
    assert not settings.repos_path.exists()


def test_parser_accepts_flags():
    args = _build_parser().parse_args([URL, "--skip-cleanup", "--verbose", "--follow-hierarchy"])
    assert args.url == URL
    assert args.skip_cleanup is True
    assert args.verbose is True
    assert args.follow_hierarchy is True
    assert args.force_cleanup is None


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    monkeypatch.setenv("DA_GIT_REPOS_PATH", str(tmp_path / "repos"))
    monkeypatch.setenv("DA_GIT_CACHE_PATH", str(tmp_path / "cache"))
    monkeypatch.setenv("SKIP_CLEANUP", "1")
    monkeypatch.delenv("GITOPS_VERBOSE", raising=False)
    monkeypatch.delenv("GITOPS_FOLLOW_HIERARCHY", raising=False)
    return tmp_path


def test_cli_missing_url_exits_1():
    with pytest.raises(SystemExit) as exc_info:
        main([])
    assert exc_info.value.code == 1


def test_cli_malformed_url_exits_1(cli_env, capsys):
    assert main(["not a url"]) == 1
    assert capsys.readouterr().out == ""


def test_cli_prints_json_on_success(cli_env, monkeypatch, capsys, cloc_output):
    fake = FakeRunner({("cloc",): cloc_output}, on_clone=_clone_into)
    monkeypatch.setattr(main_module, "CommandRunner", lambda: fake)

    assert main([URL]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["loc"] == 530
    assert payload["pls"][0] == {
        "language": "Go", "files": "10", "blank": "50", "comment": "20", "code": "500",
    }


def test_cli_errored_run_exits_1_without_json(cli_env, monkeypatch, capsys):
    fake = FakeRunner({("git", "clone"): failed()})
    monkeypatch.setattr(main_module, "CommandRunner", lambda: fake)

    assert main([URL]) == 1
    assert capsys.readouterr().out == ""
