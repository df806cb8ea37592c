"""
Command line interface for the prd_helper tool.

This module defines the ``main`` command group used as the entry point
of the ``prdescribe`` command. Each subcommand collects changes from
Git, assembles the baseline description and, when enabled, refines it
with the configured text-generation provider. Exit codes are defined
below; exactly one error message is printed for a failed invocation.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Optional

import click

from prd_helper import __version__
from prd_helper.config.loader import ConfigError, load_config
from prd_helper.config.state import ConsentStore
from prd_helper.context import AppContext
from prd_helper.llm.orchestrator import GenerationOrchestrator, GenerationState
from prd_helper.pipeline import (
    NoChangesError,
    NoWorkspaceError,
    PipelineResult,
    generate_against_base,
    generate_from_staged,
)
from prd_helper.vcs.git_client import GitClient, GitError, GitUnavailableError, NotARepositoryError

# Create a module-level logger. Attach a null handler and disable
# propagation to avoid logging errors when the root logger's stream is
# closed (such as during unit tests).
logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------
EXIT_SUCCESS = 0
EXIT_GENERIC_ERROR = 1
EXIT_INVALID_USAGE = 2
EXIT_NO_REPO = 3
EXIT_NO_CHANGES = 4
EXIT_CONFIG_ERROR = 5
EXIT_VCS_FAILURE = 6
EXIT_GIT_UNAVAILABLE = 7
EXIT_CANCELED = 8


# ---------------------------------------------------------------------------
# Progress and status display utilities
# ---------------------------------------------------------------------------
# Status output goes to stderr so that stdout carries only the report.

class ProgressIndicator:
    """Simple progress indicator for user feedback."""

    def __init__(self, message: str, quiet: bool = False):
        self.message = message
        self.quiet = quiet
        self.start_time = 0.0

    def __enter__(self):
        self.start_time = time.time()
        if not self.quiet:
            click.echo(f"→ {self.message}...", err=True)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if not self.quiet and exc_type is None:
            elapsed = time.time() - self.start_time
            click.echo(f"  ✓ Done ({elapsed:.1f}s)", err=True)
        return False


def print_info(message: str, indent: int = 0):
    """Print an info message."""
    click.echo(f"{'  ' * indent}ℹ {message}", err=True)


def print_success(message: str, indent: int = 0):
    """Print a success message."""
    click.echo(f"{'  ' * indent}✓ {message}", err=True)


def print_warning(message: str, indent: int = 0):
    """Print a warning message."""
    click.echo(f"{'  ' * indent}⚠ {message}", err=True)


def print_error(message: str, indent: int = 0):
    """Print an error message."""
    click.echo(f"{'  ' * indent}✗ {message}", err=True)


# ---------------------------------------------------------------------------
# Interaction
# ---------------------------------------------------------------------------
class ClickInteraction:
    """Terminal implementation of the generation prompts.

    Aborting a prompt (Ctrl-C or end of input) counts as declining.
    """

    def accept_disclosure(self, disclosure: str) -> bool:
        click.echo("", err=True)
        click.echo(click.wrap_text(disclosure, width=72), err=True)
        try:
            return click.confirm("Do you agree to share this data?", default=False, err=True)
        except click.Abort:
            return False

    def confirm_send(self, message: str) -> bool:
        try:
            return click.confirm(message, default=True, err=True)
        except click.Abort:
            return False

    def review_prompt(self, prompt: str, token: str) -> str:
        click.echo(f"\n{'─' * 60}\n{prompt}\n{'─' * 60}", err=True)
        try:
            return click.prompt(
                f"Press Enter or type {token} to send; anything else cancels",
                default="",
                show_default=False,
                err=True,
            )
        except click.Abort:
            return "cancel"


# ---------------------------------------------------------------------------
# Core functionality
# ---------------------------------------------------------------------------
def resolve_repo_root(repo: Optional[Path]) -> Path:
    """Return the project root: ``repo`` if given, else the enclosing Git root of the cwd."""
    if repo is not None:
        return repo
    cwd = Path.cwd()
    return GitClient.find_repo_root(cwd) or cwd


def build_context(ctx: click.Context, repo: Optional[Path], **overrides) -> AppContext:
    """Load configuration, apply command-line overrides and build the context."""
    try:
        settings = load_config(ctx.obj.get("config_path")).with_overrides(**overrides)
    except ConfigError as exc:
        print_error(f"Configuration error: {exc}")
        raise click.exceptions.Exit(EXIT_CONFIG_ERROR)
    return AppContext(resolve_repo_root(repo), settings, ConsentStore())


def run_pipeline(collect: Callable[[], PipelineResult], quiet: bool = False) -> PipelineResult:
    """Run a collection pipeline, turning its failures into exit codes."""
    try:
        with ProgressIndicator("Collecting changes", quiet=quiet):
            return collect()
    except NoWorkspaceError as exc:
        print_error(str(exc))
        raise click.exceptions.Exit(EXIT_NO_REPO)
    except GitUnavailableError as exc:
        print_error("Git is not available. Install Git and make sure it is on your PATH.")
        logger.debug("Git unavailable: %s", exc)
        raise click.exceptions.Exit(EXIT_GIT_UNAVAILABLE)
    except NotARepositoryError as exc:
        print_error("Not a git repository")
        logger.debug("Repository check failed: %s", exc)
        raise click.exceptions.Exit(EXIT_NO_REPO)
    except GitError as exc:
        print_error(str(exc))
        raise click.exceptions.Exit(EXIT_VCS_FAILURE)
    except NoChangesError as exc:
        print_info(str(exc))
        raise click.exceptions.Exit(EXIT_NO_CHANGES)


def refine(context: AppContext, result: PipelineResult, yes: bool) -> Optional[str]:
    """Run the generation pass; ``None`` means the user canceled."""
    orchestrator = GenerationOrchestrator(context, ClickInteraction(), auto_confirm=yes)
    print_info("Press Ctrl-C while the request is running to cancel.")
    outcome = orchestrator.run(result.markdown, result.changes, result.raw_diff)
    if outcome.state is GenerationState.CANCELED:
        return None
    if outcome.state is GenerationState.FALLEN_BACK:
        print_warning(f"{outcome.warning} Using the locally generated description.")
    else:
        print_success("Description refined with AI")
    return outcome.text


def emit(markdown: str, output: Optional[Path]) -> None:
    if output is not None:
        output.write_text(markdown, encoding="utf-8")
        print_success(f"Description written to {output}")
        return
    click.echo(markdown, nl=not markdown.endswith("\n"))


def _describe(ctx: click.Context, collect: Callable[[AppContext], PipelineResult], options: dict) -> None:
    if options.pop("reset_consent"):
        ConsentStore().reset()
        print_info("AI data-sharing consent has been reset.")

    repo = options.pop("repo")
    output = options.pop("output")
    yes = options.pop("yes")
    context = build_context(
        ctx,
        repo,
        max_diff_lines=options.pop("max_diff_lines"),
        include_files_section=options.pop("include_files"),
        ai_enabled=options.pop("ai"),
        ai_preview_prompt=options.pop("preview_prompt"),
    )
    logger.debug("Context: %r, settings: %s", context, context.settings)

    result = run_pipeline(lambda: collect(context))
    markdown = result.markdown

    if context.settings.ai.enabled:
        refined = refine(context, result, yes)
        if refined is None:
            print_warning("Canceled; no description was produced.")
            raise click.exceptions.Exit(EXIT_CANCELED)
        markdown = refined

    emit(markdown, output)


def describe(ctx: click.Context, collect: Callable[[AppContext], PipelineResult], options: dict) -> None:
    """Shared body of the ``staged`` and ``base`` commands."""
    try:
        _describe(ctx, collect, options)
    except click.exceptions.Exit:
        # Click uses its own Exit exception; re-raise to let Click handle it
        raise
    except Exception as exc:
        logger.exception("Unhandled error: %s", exc)
        print_error(f"Unexpected error: {exc}")
        ctx.exit(EXIT_GENERIC_ERROR)


COMMON_OPTIONS = (
    click.option("--repo", type=click.Path(file_okay=False, path_type=Path), help="Project folder (defaults to the enclosing Git repository)."),
    click.option("--max-diff-lines", type=int, help="Maximum number of diff lines to analyse."),
    click.option("--include-files/--no-include-files", default=None, help="Add a 'Files changed' section."),
    click.option("--ai/--no-ai", default=None, help="Refine the description with the configured AI provider."),
    click.option("--preview-prompt/--no-preview-prompt", default=None, help="Show the exact AI prompt before sending it."),
    click.option("--yes", "yes", is_flag=True, help="Send to the AI provider without asking for confirmation."),
    click.option("--reset-consent", is_flag=True, help="Forget the accepted AI data-sharing disclosure."),
    click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Write the description to a file instead of stdout."),
)


def common_options(func):
    """Apply the options shared by every describe command."""
    for option in reversed(COMMON_OPTIONS):
        func = option(func)
    return func


def _enable_library_logging() -> None:
    """Let the package loggers propagate to the root handlers configured above."""
    for name, candidate in logging.root.manager.loggerDict.items():
        if name.startswith("prd_helper") and isinstance(candidate, logging.Logger):
            candidate.propagate = True


@click.group()
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path), help="Path to a configuration file.")
@click.option("--verbose", is_flag=True, help="Enable verbose (debug) output.")
@click.version_option(version=__version__, prog_name="prdescribe")
@click.pass_context
def main(ctx: click.Context, config_path: Optional[Path], verbose: bool) -> None:
    """Generate pull request descriptions from Git changes."""
    # force=True so repeated invocations (tests) reconfigure handlers
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        force=True,
    )
    if verbose:
        _enable_library_logging()
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


@main.command()
@common_options
@click.pass_context
def staged(ctx: click.Context, **options) -> None:
    """Describe the staged changes."""
    describe(ctx, generate_from_staged, options)


@main.command()
@click.option("--base-branch", help="Branch to compare against (default from configuration, 'main').")
@common_options
@click.pass_context
def base(ctx: click.Context, base_branch: Optional[str], **options) -> None:
    """Describe the current branch against a base branch."""
    describe(ctx, lambda context: generate_against_base(context, base_branch), options)
