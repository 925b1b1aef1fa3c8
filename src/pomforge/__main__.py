from __future__ import annotations

import argparse
import json
import logging
import os
from pathlib import Path
import sys
from typing import Sequence

from . import __version__
from .analyzer import BatchResult, HtmlSource, analyze_urls, merge_into_project
from .fetcher import FetchSettings, PageFetcher, StaticHtmlSource
from .framework_store import FrameworkStore
from .models import AutomationProject, ProjectConfig
from .pytest_writer import generate_pytest_framework, write_generated_files

BROWSER_CHOICES = ("chrome", "firefox", "edge")

logger = logging.getLogger("pomforge.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pomforge",
        description="Infer page objects and pytest suites from rendered web pages.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="Analyze one or more URLs.")
    analyze.add_argument("urls", nargs="+", metavar="URL")
    analyze.add_argument(
        "--html-file",
        action="append",
        type=Path,
        default=[],
        metavar="PATH",
        help="Use saved HTML instead of fetching; give one per URL, in order.",
    )
    analyze.add_argument("--output", type=Path, metavar="DIR", help="Write the generated pytest project here.")
    analyze.add_argument("--save", metavar="NAME", help="Save the result as a new framework.")
    analyze.add_argument("--framework-id", metavar="ID", help="Append the result to a saved framework.")
    analyze.add_argument("--project-name", metavar="NAME")
    analyze.add_argument("--browser", choices=BROWSER_CHOICES)
    analyze.add_argument("--headed", action="store_true", help="Show the browser while fetching.")
    analyze.add_argument("--json", action="store_true", help="Print the inference result as JSON.")

    subparsers.add_parser("list", help="List saved frameworks.")

    export = subparsers.add_parser("export", help="Write a saved framework as a pytest project.")
    export.add_argument("framework_id", metavar="ID")
    export.add_argument("--output", type=Path, required=True, metavar="DIR")

    delete = subparsers.add_parser("delete", help="Delete a saved framework.")
    delete.add_argument("framework_id", metavar="ID")
    return parser


def configure_logging(verbose: bool) -> None:
    if verbose:
        level = logging.DEBUG
    else:
        level = getattr(logging, os.environ.get("POMFORGE_LOG_LEVEL", "WARNING").upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def main(argv: Sequence[str] | None = None, store: FrameworkStore | None = None) -> int:
    if sys.version_info < (3, 10):
        raise SystemExit(
            "pomforge requires Python 3.10+. "
            f"Current interpreter: {sys.executable} (Python {sys.version.split()[0]})"
        )
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if args.command == "analyze":
        if args.html_file and len(args.html_file) != len(args.urls):
            parser.error("--html-file must be given once per URL")
        return _run_analyze(args, store)

    framework_store = store or FrameworkStore()
    if args.command == "list":
        return _run_list(framework_store)
    if args.command == "export":
        return _run_export(framework_store, args.framework_id, args.output)
    if args.command == "delete":
        if not framework_store.delete(args.framework_id):
            print(f"Framework not found: {args.framework_id}", file=sys.stderr)
            return 1
        print(f"Deleted {args.framework_id}")
        return 0
    parser.error(f"Unknown command: {args.command}")
    return 2


def _run_analyze(args: argparse.Namespace, store: FrameworkStore | None) -> int:
    framework_store = store
    if args.save or args.framework_id:
        framework_store = store or FrameworkStore()

    existing = None
    if args.framework_id:
        existing = framework_store.get(args.framework_id)
        if existing is None:
            print(f"Framework not found: {args.framework_id}", file=sys.stderr)
            return 1

    source = _html_source(args)
    batch = analyze_urls(args.urls, source, on_progress=lambda message: print(message, file=sys.stderr))
    if batch.all_failed:
        for failure in batch.failures:
            print(f"Failed: {failure.url}: {failure.message}", file=sys.stderr)
        return 1

    base_project = existing.project if existing else AutomationProject(config=_project_config(args))
    if existing and (args.project_name or args.browser or args.headed):
        base_project = AutomationProject(
            config=_project_config(args, existing.project.config),
            pages=existing.project.pages,
            tests=existing.project.tests,
        )
    project = merge_into_project(base_project, batch)

    if args.json:
        print(json.dumps(_batch_payload(batch), indent=2))
    else:
        _print_summary(batch)

    if existing is not None:
        updated = framework_store.update(existing.id, project, last_urls=batch.urls)
        print(f"Updated framework {updated.id} to version {updated.version}", file=sys.stderr)
    elif args.save:
        saved = framework_store.create(args.save, project, last_urls=batch.urls)
        print(f"Saved framework {saved.id} ({saved.name})", file=sys.stderr)

    if args.output:
        ok, message, _paths = write_generated_files(generate_pytest_framework(project), args.output)
        print(message, file=sys.stderr)
        if not ok:
            return 1
    return 0


def _html_source(args: argparse.Namespace) -> HtmlSource:
    if not args.html_file:
        return PageFetcher(FetchSettings(headless=not args.headed))
    pages = {
        url.strip(): path.read_text(encoding="utf-8")
        for url, path in zip(args.urls, args.html_file)
    }
    return StaticHtmlSource(pages)


def _project_config(args: argparse.Namespace, current: ProjectConfig | None = None) -> ProjectConfig:
    config = current or ProjectConfig()
    return ProjectConfig(
        project_name=args.project_name or config.project_name,
        base_url=config.base_url,
        browser=args.browser or config.browser,
        headless=False if args.headed else config.headless,
        default_timeout=config.default_timeout,
        retries=config.retries,
        screenshot_on_failure=config.screenshot_on_failure,
        use_allure_report=config.use_allure_report,
    )


def _batch_payload(batch: BatchResult) -> dict:
    return {
        "results": [result.to_dict() for result in batch.results],
        "failures": [{"url": failure.url, "message": failure.message} for failure in batch.failures],
    }


def _print_summary(batch: BatchResult) -> None:
    for url, result in zip(batch.result_urls, batch.results):
        print(f"{url} -> {result.page_name}")
        for element in result.elements:
            print(f"  {element.name:<40} {element.locator_kind:<16} {element.locator_value}")
        for test in result.tests:
            print(f"  [{test.type}] {test.name} ({len(test.steps)} steps)")
    for failure in batch.failures:
        print(f"{failure.url} -> FAILED: {failure.message}")


def _run_list(store: FrameworkStore) -> int:
    frameworks = store.list_all()
    if not frameworks:
        print("No saved frameworks.")
        return 0
    for framework in frameworks:
        print(
            f"{framework.id}  {framework.name}  v{framework.version}  "
            f"pages={framework.total_pages} tests={framework.total_tests}  updated={framework.updated_at}"
        )
    return 0


def _run_export(store: FrameworkStore, framework_id: str, output: Path) -> int:
    framework = store.get(framework_id)
    if framework is None:
        print(f"Framework not found: {framework_id}", file=sys.stderr)
        return 1
    ok, message, _paths = write_generated_files(generate_pytest_framework(framework.project), output)
    print(message)
    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
