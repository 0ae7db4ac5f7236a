"""Run orchestration: source preparation, discovery and per-module output."""

from __future__ import annotations

import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from .assembly import AssemblyError, AssemblyPipeline
from .classifier import classify, classify_path, compute_module_path, select_printable
from .config import (
    ConfigError,
    Git2PdfConfig,
    RenderConfig,
    build_render_config,
    load_config,
    resolve_output_format,
)
from .discovery import ManifestError, discover
from .git import GitError, GitRepository, extract_repo_name, is_remote_source
from .logging import get_logger
from .models import ClassifiedFile, Module
from .rendering import HighlightRules, HtmlRenderer, RenderError, StyledListing, render_listing, resolve_theme
from .walker import WalkError


class RunError(RuntimeError):
    """Raised for failures that end the whole run."""


@dataclass
class RunOptions:
    """Per-invocation settings; ``None`` defers to .git2pdf.yml or defaults."""

    output_dir: Optional[Path] = None
    ref: Optional[str] = None
    temp_dir: Optional[Path] = None
    config_path: Optional[Path] = None
    output_format: Optional[str] = None
    include_tests: Optional[bool] = None
    parallel: Optional[bool] = None
    modules: Optional[Sequence[str]] = None
    theme: Optional[str] = None
    font_size: Optional[float] = None
    font_path: Optional[Path] = None
    paper_size: Optional[str] = None
    margins: Optional[str] = None
    columns: Optional[int] = None
    page_break: Optional[bool] = None


@dataclass
class ModuleOutcome:
    """What happened to one module during a run."""

    module: str
    output_path: Optional[Path] = None
    file_count: int = 0
    skipped: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class RunResult:
    source_root: Path
    commit: Optional[str]
    outcomes: List[ModuleOutcome] = field(default_factory=list)

    @property
    def failed(self) -> List[ModuleOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.succeeded]

    @property
    def ok(self) -> bool:
        return not self.failed


class Orchestrator:
    """Coordinates discovery, classification and assembly for a source tree."""

    def __init__(
        self,
        pipeline: AssemblyPipeline | None = None,
        html_renderer: HtmlRenderer | None = None,
        git_runner: Callable[..., str] | None = None,
    ) -> None:
        self.pipeline = pipeline
        self.html_renderer = html_renderer
        self.git_runner = git_runner
        self.logger = get_logger("orchestrator")

    def run(self, source: str, options: RunOptions | None = None) -> RunResult:
        """Render every selected crate under *source* into its own document."""
        options = options or RunOptions()
        root, commit = self._prepare_source(source, options)
        config = self._load_config(root, options)
        render = self._render_config(config, options)
        fmt = resolve_output_format(options.output_format, config)
        output_dir = self._output_dir(config, options)

        try:
            modules = discover(root)
        except ManifestError as exc:
            raise RunError(str(exc)) from exc
        if not modules:
            raise RunError(f"No crates found under {root}")
        modules = self._filter_modules(modules, render.modules)
        self.logger.info("Found %d crate(s) to render under %s", len(modules), root)

        pipeline = self._pipeline(config, options)
        result = RunResult(source_root=root, commit=commit)
        for module in modules:
            outcome = self._process_module(module, render, fmt, output_dir, pipeline, commit)
            result.outcomes.append(outcome)

        if result.failed:
            self.logger.error(
                "%d of %d crate(s) failed: %s",
                len(result.failed),
                len(result.outcomes),
                ", ".join(outcome.module for outcome in result.failed),
            )
        return result

    def run_file(self, path: str | Path, options: RunOptions | None = None) -> RunResult:
        """Render a single ``.rs`` file, named after its stem."""
        options = options or RunOptions()
        file_path = Path(path).expanduser().resolve()
        if not file_path.is_file():
            raise RunError(f"File not found: {file_path}")

        config = self._load_config(file_path.parent, options)
        render = self._render_config(config, options)
        fmt = resolve_output_format(options.output_format, config)
        output_dir = self._output_dir(config, options)

        module = Module(name=file_path.stem, root_path=file_path.parent)
        relative_path = file_path.name
        item = ClassifiedFile(
            absolute_path=file_path,
            relative_path=relative_path,
            category=classify_path(relative_path),
            module_path=compute_module_path(relative_path),
        )
        pipeline = self._pipeline(config, options)
        outcome = self._write_module(module, [item], render, fmt, output_dir, pipeline, None)
        return RunResult(source_root=file_path.parent, commit=None, outcomes=[outcome])

    # ------------------------------------------------------------------
    # Helpers

    def _prepare_source(self, source: str, options: RunOptions) -> Tuple[Path, Optional[str]]:
        repo: GitRepository | None = None
        try:
            if is_remote_source(source):
                base = options.temp_dir or Path(tempfile.gettempdir())
                destination = base / "git2pdf" / extract_repo_name(source)
                repo = GitRepository.clone_or_open(source, destination, runner=self.git_runner)
                root = destination.resolve()
            else:
                root = Path(source).expanduser().resolve()
                if not root.exists():
                    raise RunError(f"Source path does not exist: {root}")
                if not root.is_dir():
                    raise RunError(f"Source path is not a directory: {root}")
                if (root / ".git").exists():
                    repo = GitRepository(root, runner=self.git_runner)

            if options.ref:
                if repo is None:
                    raise RunError(f"--ref requires a git repository, but {root} is not one")
                return root, repo.checkout(options.ref)
            return root, repo.head_commit() if repo is not None else None
        except GitError as exc:
            raise RunError(str(exc)) from exc

    def _load_config(self, root: Path, options: RunOptions) -> Git2PdfConfig:
        config_path = options.config_path or root
        config = load_config(config_path)
        self.logger.debug("Loaded configuration from %s", config_path)
        return config

    def _render_config(self, config: Git2PdfConfig, options: RunOptions) -> RenderConfig:
        return build_render_config(
            config,
            include_tests=options.include_tests,
            parallel=options.parallel,
            modules=options.modules,
            theme=options.theme,
            font_size=options.font_size,
            font_path=options.font_path,
            paper_size=options.paper_size,
            margins=options.margins,
            columns=options.columns,
            page_break=options.page_break,
        )

    @staticmethod
    def _output_dir(config: Git2PdfConfig, options: RunOptions) -> Path:
        output_dir = options.output_dir or config.output.dir or Path.cwd()
        return Path(output_dir).expanduser().resolve()

    def _pipeline(self, config: Git2PdfConfig, options: RunOptions) -> AssemblyPipeline:
        if self.pipeline is not None:
            return self.pipeline
        return AssemblyPipeline(cache_parent=options.temp_dir or config.cache_dir)

    def _filter_modules(self, modules: List[Module], allowlist: Sequence[str]) -> List[Module]:
        if not allowlist:
            return modules
        wanted = set(allowlist)
        selected = [module for module in modules if module.name in wanted]
        missing = sorted(wanted - {module.name for module in selected})
        if not selected:
            available = ", ".join(module.name for module in modules)
            raise RunError(
                f"No crates match {', '.join(sorted(wanted))}; available crates: {available}"
            )
        if missing:
            self.logger.warning("Unknown crate name(s) ignored: %s", ", ".join(missing))
        return selected

    def _process_module(
        self,
        module: Module,
        render: RenderConfig,
        fmt: str,
        output_dir: Path,
        pipeline: AssemblyPipeline,
        commit: Optional[str],
    ) -> ModuleOutcome:
        self.logger.info("Processing crate %s (%s)", module.name, module.root_path)
        try:
            classified = classify(
                module.root_path, render.include_tests, exclude_paths=render.exclude_paths
            )
        except WalkError as exc:
            self.logger.error("Skipping crate %s: %s", module.name, exc)
            return ModuleOutcome(module=module.name, error=str(exc))

        files = select_printable(classified, render.include_tests)
        if not files:
            self.logger.warning("No printable files in crate %s", module.name)
            return ModuleOutcome(module=module.name)
        return self._write_module(module, files, render, fmt, output_dir, pipeline, commit)

    def _write_module(
        self,
        module: Module,
        files: List[ClassifiedFile],
        render: RenderConfig,
        fmt: str,
        output_dir: Path,
        pipeline: AssemblyPipeline,
        commit: Optional[str],
    ) -> ModuleOutcome:
        output_path = output_dir / f"{module.name}.{fmt}"
        try:
            if fmt == "html":
                document, skipped = self._render_html(module, files, render, commit)
                rendered = len(files) - len(skipped)
                output_dir.mkdir(parents=True, exist_ok=True)
                output_path.write_text(document, encoding="utf-8")
            else:
                report = pipeline.run(module, files, render, commit=commit)
                skipped = report.skipped
                rendered = len(report.staged)
                output_dir.mkdir(parents=True, exist_ok=True)
                output_path.write_bytes(report.data)
        except (AssemblyError, ConfigError, OSError) as exc:
            self.logger.error("Failed to render crate %s: %s", module.name, exc)
            return ModuleOutcome(module=module.name, error=str(exc))

        self.logger.info("Wrote %s (%d file(s))", output_path, rendered)
        return ModuleOutcome(
            module=module.name,
            output_path=output_path,
            file_count=rendered,
            skipped=list(skipped),
        )

    def _render_html(
        self,
        module: Module,
        files: List[ClassifiedFile],
        render: RenderConfig,
        commit: Optional[str],
    ) -> Tuple[str, List[str]]:
        rules = HighlightRules()
        theme = resolve_theme(render.theme)
        listings: List[StyledListing] = []
        skipped: List[str] = []
        for item in files:
            try:
                listings.append(render_listing(item, rules, theme, render))
            except RenderError as exc:
                self.logger.warning("Skipping %s in %s: %s", item.relative_path, module.name, exc)
                skipped.append(item.relative_path)
        renderer = self.html_renderer or HtmlRenderer()
        return renderer.render_module(module, listings, render, commit=commit), skipped


__all__ = ["ModuleOutcome", "Orchestrator", "RunError", "RunOptions", "RunResult"]
