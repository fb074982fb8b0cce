"""React Native project materialization pipeline.

Turns the ``HelloWorld`` template into a ready-to-build project in five
stages, run strictly in order after a preflight check:

Stage 1: COPY          -- Copy the template tree into the destination.
Stage 2: PLACEHOLDERS  -- Substitute tokens and fix structured files.
Stage 3: RENAME        -- Move template-named iOS bundles and the Kotlin package.
Stage 4: ASSETS        -- Project splash screens, app icons and fonts.
Stage 5: FEATURES      -- Apply environments, Firebase, navigation, ...

After a successful materialization the external steps run: dependency
install, CocoaPods (macOS only) and the initial git commit.  Their failures
print recovery hints and never abort the run.

Usage::

    python -m src.pipeline MyApp --bundle-id com.acme.myapp
    python -m src.pipeline MyApp --env staging --navigation with-auth --theme
"""

from __future__ import annotations

import asyncio
import shutil
import sys
import time
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from rich.panel import Panel

from src.config import (
    FirebaseSetupError,
    MapsProvider,
    NavigationMode,
    PackageManager,
    ProjectConfig,
)
from src.features import FeatureComposer
from src.materializer import (
    AssetProjector,
    ExternalStepResult,
    FontProjector,
    MaterializeReport,
    PathRenamer,
    PlaceholderEngine,
    StageResult,
    TemplateManifest,
    TreeCopier,
    TreeCopyError,
)
from src.utils import (
    console,
    create_progress,
    format_duration,
    load_json,
    print_error,
    print_stage_header,
    print_success,
    print_summary_table,
    print_warning,
    run_command,
)

STAGE_NAMES = ("copy", "placeholders", "rename", "assets", "features")

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class MaterializeError(Exception):
    """Raised when a stage fails in a way that leaves no usable project."""

    def __init__(self, stage: str, message: str) -> None:
        self.stage = stage
        super().__init__(f"Stage {stage}: {message}")


# ---------------------------------------------------------------------------
# Materializer
# ---------------------------------------------------------------------------


class Materializer:
    """Materializes one project from a template and a resolved configuration.

    Attributes:
        config: Validated project configuration; never mutated.
        template_dir: Template tree to copy from.
        manifest: Tokens, rewrite targets and rename rules of the template.
        report: Stage and external step outcomes, filled in as the run goes.
    """

    def __init__(
        self,
        config: ProjectConfig,
        template_dir: str | Path | None = None,
        composer: FeatureComposer | None = None,
    ) -> None:
        self.config = config
        source = template_dir or config.template_dir
        self.template_dir = Path(source) if source else None
        self.manifest = (
            TemplateManifest.for_template(self.template_dir) if self.template_dir else TemplateManifest()
        )
        self.composer = composer or FeatureComposer()
        self.report = MaterializeReport(
            project_name=config.project_name,
            project_path=str(config.project_path),
        )

    @property
    def dest(self) -> Path:
        return self.config.project_path

    # ------------------------------------------------------------------
    # Materialization
    # ------------------------------------------------------------------

    async def materialize(self) -> MaterializeReport:
        """Run the preflight check and every stage in order.

        Returns:
            The run report.  Per-file problems are recorded as warnings on
            the stage that hit them.

        Raises:
            MaterializeError: If the preflight check or a stage fails.
                Nothing is rolled back.
        """
        await self._preflight()
        stages: dict[str, Callable[[], Awaitable[StageResult]]] = {
            "copy": self._stage_copy,
            "placeholders": self._stage_placeholders,
            "rename": self._stage_rename,
            "assets": self._stage_assets,
            "features": self._stage_features,
        }
        for name in STAGE_NAMES:
            print_stage_header(name.capitalize())
            stage_start = time.monotonic()
            try:
                result = await stages[name]()
            except TreeCopyError as exc:
                raise MaterializeError(name, str(exc)) from exc
            except (OSError, UnicodeDecodeError) as exc:
                raise MaterializeError(name, f"{exc.__class__.__name__}: {exc}") from exc
            result.duration_seconds = time.monotonic() - stage_start
            self.report.stages.append(result)
            print_success(
                f"{name.capitalize()} completed in {format_duration(result.duration_seconds)}"
            )
        return self.report

    async def _preflight(self) -> None:
        """Validate everything that can be validated before touching the disk.

        * The template directory exists.
        * The destination is free, unless ``overwrite`` is set.
        * Every Firebase environment has both Google config files.

        Only after all checks pass is an existing destination removed.
        """
        if self.template_dir is None:
            raise MaterializeError(
                "preflight",
                "No template directory given (use --template or template_dir in the config file)",
            )
        if not self.template_dir.is_dir():
            raise MaterializeError("preflight", f"Template directory not found: {self.template_dir}")

        dest = self.dest
        if dest.exists() and not self.config.overwrite:
            raise MaterializeError(
                "preflight",
                f"Destination {dest} already exists (use --overwrite to replace it)",
            )

        if self.config.firebase.enabled:
            try:
                self.config.firebase.validate_google_files()
            except FirebaseSetupError as exc:
                raise MaterializeError("preflight", str(exc)) from exc

        if dest.exists():
            print_warning(f"Removing existing {dest}")
            try:
                await asyncio.to_thread(_remove_tree, dest)
            except OSError as exc:
                raise MaterializeError("preflight", f"Could not remove {dest}: {exc}") from exc

    async def _stage_copy(self) -> StageResult:
        copied = await TreeCopier(self.template_dir, self.dest).copy()
        console.print(f"  [green]+[/green] Copied {copied} file(s) from {self.template_dir}")
        return StageResult(name="copy", items=copied)

    async def _stage_placeholders(self) -> StageResult:
        engine = PlaceholderEngine(self.manifest)
        warnings = await asyncio.to_thread(engine.apply, self.dest, self.config)
        return StageResult(
            name="placeholders",
            items=len(self.manifest.rewrite_targets()) + 1,
            warnings=warnings,
        )

    async def _stage_rename(self) -> StageResult:
        moved = await asyncio.to_thread(PathRenamer(self.manifest).apply, self.dest, self.config)
        for entry in moved:
            console.print(f"  [green]+[/green] {entry}")
        return StageResult(name="rename", items=len(moved), details=moved)

    async def _stage_assets(self) -> StageResult:
        warnings = await asyncio.to_thread(AssetProjector().project, self.dest, self.config)
        warnings += await asyncio.to_thread(FontProjector().project, self.dest, self.config)
        sources = [
            label
            for label, source in (
                ("splash", self.config.splash_screen_dir),
                ("icons", self.config.app_icon_dir),
                ("fonts", self.config.fonts_dir),
            )
            if source is not None
        ]
        return StageResult(name="assets", items=len(sources), warnings=warnings, details=sources)

    async def _stage_features(self) -> StageResult:
        active = [feature.name for feature in self.composer.active(self.config)]
        console.print(f"  Features: {', '.join(active)}")
        warnings = await self.composer.apply(self.dest, self.config)
        return StageResult(name="features", items=len(active), warnings=warnings, details=active)

    # ------------------------------------------------------------------
    # External steps
    # ------------------------------------------------------------------

    async def run(self) -> MaterializeReport:
        """Materialize, then install dependencies, pods and the git repository.

        Raises:
            MaterializeError: Only from materialization; external steps
                record their failures on the report instead.
        """
        run_start = time.monotonic()
        console.print(
            Panel(
                f"[bold bright_cyan]React Native Materializer[/bold bright_cyan]\n"
                f"Project  : {self.config.project_name}\n"
                f"Bundle   : {self.config.bundle_identifier}\n"
                f"Output   : {self.dest.resolve()}",
                title="[bold]Materialize[/bold]",
                border_style="bright_cyan",
            )
        )
        await self.materialize()

        install = await self._install()
        self.report.external_steps.append(install)
        self.report.external_steps.append(await self._pods(install))
        self.report.external_steps.append(await self._git())

        for step in self.report.external_steps:
            if not step.success and not step.skipped:
                print_warning(f"{step.name} failed: {step.message}")
                if step.recovery_hint:
                    console.print(f"  Run manually: [bold]{step.recovery_hint}[/bold]")

        self._print_final_summary(time.monotonic() - run_start)
        return self.report

    async def _install(self) -> ExternalStepResult:
        manager = self.config.package_manager
        cmd = [manager.value, "install"]
        if manager == PackageManager.NPM:
            cmd.append("--legacy-peer-deps")
        command = " ".join(cmd)
        if self.config.skip_install:
            return ExternalStepResult(name="install", command=command, skipped=True,
                                      message="skipped by --skip-install")

        print_stage_header("Install")
        with create_progress() as progress:
            progress.add_task(f"Running {command}...", total=None)
            rc, _, stderr = await run_command(cmd, cwd=self.dest)
        return ExternalStepResult(
            name="install",
            command=command,
            success=rc == 0,
            message="" if rc == 0 else stderr,
            recovery_hint="" if rc == 0 else f"cd {self.dest} && {command}",
        )

    async def _pods(self, install: ExternalStepResult) -> ExternalStepResult:
        ios_dir = self.dest / "ios"
        reason = ""
        if self.config.skip_pods:
            reason = "skipped by --skip-pods"
        elif sys.platform != "darwin":
            reason = "CocoaPods only runs on macOS"
        elif not install.success:
            reason = "dependencies were not installed"
        elif not (ios_dir / "Podfile").is_file():
            reason = "no ios/Podfile"
        if reason:
            return ExternalStepResult(name="pods", skipped=True, message=reason)

        print_stage_header("Pods")
        command = "bundle exec pod install"
        with create_progress() as progress:
            progress.add_task("Installing CocoaPods...", total=None)
            rc, _, stderr = await run_command(["bundle", "exec", "pod", "install"], cwd=ios_dir)
            if rc != 0:
                command = "pod install"
                rc, _, stderr = await run_command(["pod", "install"], cwd=ios_dir)
        return ExternalStepResult(
            name="pods",
            command=command,
            success=rc == 0,
            message="" if rc == 0 else stderr,
            recovery_hint="" if rc == 0 else f"cd {ios_dir} && bundle exec pod install",
        )

    async def _git(self) -> ExternalStepResult:
        if self.config.skip_git:
            return ExternalStepResult(name="git", skipped=True, message="skipped by --skip-git")

        print_stage_header("Git")
        commands = [
            ["git", "init"],
            ["git", "add", "."],
            ["git", "commit", "-m", "Initial commit"],
        ]
        for cmd in commands:
            rc, _, stderr = await run_command(cmd, cwd=self.dest, timeout=120)
            if rc != 0:
                return ExternalStepResult(
                    name="git",
                    command=" ".join(cmd),
                    message=stderr,
                    recovery_hint=(
                        f'cd {self.dest} && git init && git add . && git commit -m "Initial commit"'
                    ),
                )
        return ExternalStepResult(name="git", command="git init", success=True)

    def _print_final_summary(self, total_elapsed: float) -> None:
        summary = self.report.summary_dict()
        summary["Warnings"] = str(self.report.warning_count)
        summary["Duration"] = format_duration(total_elapsed)
        print_summary_table(summary, title="Materialization Summary")
        for warning in self.report.warnings:
            console.print(f"  [yellow]-[/yellow] {warning}")


def _remove_tree(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def build_parser():
    import argparse

    parser = argparse.ArgumentParser(
        prog="rn-materialize",
        description="Materialize a React Native project from the HelloWorld template",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python -m src.pipeline MyApp --template ./template\n"
            "  python -m src.pipeline MyApp --bundle-id com.acme.myapp --display-name 'My App'\n"
            "  python -m src.pipeline MyApp --env staging --env development --navigation with-auth\n"
            "  python -m src.pipeline MyApp --firebase-module analytics --google-files ./firebase\n"
            "  python -m src.pipeline --config myapp.json --skip-install\n"
        ),
    )
    parser.add_argument("project_name", nargs="?", default=None, help="Project name (e.g. MyApp)")
    parser.add_argument("--bundle-id", default=None, help="Bundle identifier (default: com.<name>)")
    parser.add_argument("--display-name", default=None, help="App display name (default: project name)")
    parser.add_argument(
        "--package-manager", "-p",
        choices=[m.value for m in PackageManager],
        default=None,
        help="Package manager used for installation (default: pnpm)",
    )
    parser.add_argument("--output", "-o", default=None, help="Parent directory of the project (default: .)")
    parser.add_argument(
        "--template", default=None,
        help="Template directory (required unless the config file sets template_dir)",
    )
    parser.add_argument("--config", default=None, help="JSON configuration file; flags override it")

    features = parser.add_argument_group("features")
    features.add_argument("--env", action="append", default=None, metavar="ENV",
                          help="Build environment (repeatable), e.g. staging")
    features.add_argument("--firebase", action="store_true", help="Enable Firebase")
    features.add_argument("--firebase-module", action="append", default=None,
                          choices=["analytics", "remote-config", "messaging"],
                          help="Firebase module (repeatable); implies --firebase")
    features.add_argument("--firebase-env", action="append", default=None, metavar="ENV",
                          help="Firebase environment (repeatable; default: --env values)")
    features.add_argument("--google-files", default=None, metavar="DIR",
                          help="Directory with google-services.json / GoogleService-Info.plist")
    features.add_argument("--maps", choices=[p.value for p in MapsProvider], default=None,
                          help="Enable maps with the given provider")
    features.add_argument("--google-maps", action="store_true",
                          help="Use the Google provider for react-native-maps")
    features.add_argument("--maps-api-key", default=None, help="Google Maps API key")
    features.add_argument("--storage", action="store_true", help="Enable the persisted storage layer")
    features.add_argument("--navigation", choices=[m.value for m in NavigationMode], default=None)
    features.add_argument("--localization", default=None, metavar="LANG",
                          help="Enable localization with the given default language")
    features.add_argument("--localization-remote-config", action="store_true",
                          help="Load translations from Firebase Remote Config")
    features.add_argument("--theme", action="store_true", help="Enable the theme module")
    features.add_argument("--no-persist", action="store_true",
                          help="Do not enable storage implicitly for auth, localization or theme")

    assets = parser.add_argument_group("assets")
    assets.add_argument("--splash", default=None, metavar="DIR", help="Splash screen images")
    assets.add_argument("--icons", default=None, metavar="DIR", help="App icon sets")
    assets.add_argument("--fonts", default=None, metavar="DIR", help="Custom fonts")

    steps = parser.add_argument_group("steps")
    steps.add_argument("--skip-install", action="store_true")
    steps.add_argument("--skip-git", action="store_true")
    steps.add_argument("--skip-pods", action="store_true")
    steps.add_argument("--yes", "-y", action="store_true", help="Accept every confirmation")
    steps.add_argument("--overwrite", action="store_true", help="Replace an existing destination")
    return parser


def config_data_from_args(args: Any, base: dict[str, Any] | None = None) -> dict[str, Any]:
    """Merge explicitly given CLI flags over *base* configuration data."""
    data: dict[str, Any] = dict(base or {})

    for key, value in (
        ("project_name", args.project_name),
        ("bundle_identifier", args.bundle_id),
        ("display_name", args.display_name),
        ("package_manager", args.package_manager),
        ("output_dir", args.output),
        ("template_dir", args.template),
        ("environments", args.env),
        ("splash_screen_dir", args.splash),
        ("app_icon_dir", args.icons),
        ("fonts_dir", args.fonts),
    ):
        if value is not None:
            data[key] = value
    for key in ("skip_install", "skip_git", "skip_pods", "overwrite"):
        if getattr(args, key):
            data[key] = True
    if args.yes:
        data["auto_yes"] = True

    def section(name: str) -> dict[str, Any]:
        data[name] = dict(data.get(name) or {})
        return data[name]

    if args.firebase or args.firebase_module or args.google_files:
        firebase = section("firebase")
        firebase["enabled"] = True
        if args.firebase_module:
            firebase["modules"] = args.firebase_module
        if args.google_files:
            firebase["google_files_dir"] = args.google_files
        envs = args.firebase_env or args.env
        if envs:
            firebase["environments"] = envs
    if args.maps:
        maps = section("maps")
        maps.update(enabled=True, provider=args.maps)
    if args.google_maps:
        section("maps")["google_maps"] = True
    if args.maps_api_key:
        section("maps")["api_key"] = args.maps_api_key
    if args.storage:
        section("storage")["enabled"] = True
    if args.navigation:
        section("navigation")["mode"] = args.navigation
    if args.localization:
        section("localization").update(enabled=True, default_language=args.localization)
    if args.localization_remote_config:
        section("localization")["with_remote_config"] = True
    if args.theme:
        section("theme")["enabled"] = True
    if args.no_persist:
        for name in ("navigation", "localization", "theme"):
            section(name)["persist"] = False
    return data


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``python -m src.pipeline`` and ``rn-materialize``."""
    parser = build_parser()
    args = parser.parse_args(argv)

    base: dict[str, Any] = {}
    if args.config:
        try:
            base = load_json(args.config)
        except (OSError, ValueError) as exc:
            print_error(f"Error: could not read config file {args.config}: {exc}")
            sys.exit(1)
    data = config_data_from_args(args, base)
    if not data.get("project_name"):
        parser.error("a project name is required (positional argument or config file)")

    try:
        config = ProjectConfig.model_validate(data)
    except ValidationError as exc:
        print_error(f"Invalid configuration:\n{exc}")
        sys.exit(1)

    materializer = Materializer(config)
    try:
        asyncio.run(materializer.run())
    except MaterializeError as exc:
        print_error(f"Materialization failed: {exc}")
        sys.exit(1)

    print_success(f"Project {config.project_name} is ready at {config.project_path}")


if __name__ == "__main__":
    main()
