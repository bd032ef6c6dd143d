#!/usr/bin/env python3
"""
vedit CLI - Command-line interface for the video edit operation engine.

Usage:
    vedit kinds
    vedit describe colorGrade
    vedit compile colorGrade --params '{"preset": "cinematic"}'
    vedit preview addText --public-id samples/dog --params '{"text": "Hi"}'
    vedit render trim -i in.mp4 -o out.mp4 --params '{"start": 2, "end": 8}'
    vedit apply-template retro-vintage -i in.mp4 -o out.mp4
    vedit info video.mp4
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("vedit")


def setup_logging(verbose: bool = False, quiet: bool = False):
    """Configure logging based on verbosity settings."""
    if quiet:
        logging.getLogger().setLevel(logging.WARNING)
    elif verbose:
        logging.getLogger().setLevel(logging.DEBUG)


def load_config(args):
    from vedit.core.config import EngineConfig

    if getattr(args, "config", None):
        logger.info(f"Loading configuration from: {args.config}")
        config = EngineConfig.from_file(args.config)
    else:
        config = EngineConfig.from_env()

    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(error)
        sys.exit(1)
    return config


def parse_params(raw: str | None) -> dict[str, Any]:
    """Parse --params: inline JSON, or @path to a JSON file."""
    if not raw:
        return {}
    if raw.startswith("@"):
        raw = Path(raw[1:]).read_text()
    try:
        params = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.error(f"Invalid --params JSON: {e}")
        sys.exit(1)
    if not isinstance(params, dict):
        logger.error("--params must be a JSON object")
        sys.exit(1)
    return params


def print_json(data: Any):
    print(json.dumps(data, indent=2, default=str))


def report_results(results) -> int:
    """Print per-operation results; returns the process exit code."""
    for result in results:
        print_json(result.to_dict())
    failed = [r for r in results if not r.success and not r.skipped]
    if failed:
        logger.error(f"{len(failed)} of {len(results)} operations failed")
        return 1
    return 0


def cmd_kinds(args):
    """List supported operation kinds."""
    from vedit.catalog.operations import OperationCatalog

    catalog = OperationCatalog()
    print("\nSupported operations:")
    print("=" * 60)
    for spec in catalog:
        window = " (time window)" if spec.supports_time_window else ""
        print(f"  {spec.kind.value:<18} {spec.description}{window}")


def cmd_describe(args):
    """Show the parameter spec of one operation kind."""
    from vedit.catalog.operations import OperationCatalog

    spec = OperationCatalog().describe(args.kind)
    if spec is None:
        logger.error(f"Unknown operation kind: {args.kind}")
        sys.exit(1)
    print_json(spec.to_dict())


def cmd_validate(args):
    """Validate operation parameters without compiling them."""
    from vedit.validation.validator import OperationValidator

    result = OperationValidator().validate_instruction({
        "operation": args.operation,
        "params": parse_params(args.params),
        "resourceType": args.resource_type,
    })
    if result.valid:
        print("valid")
        return
    for error in result.errors:
        print(f"  - {error}")
    sys.exit(1)


def cmd_compile(args):
    """Compile an operation to a filter expression or preview transformation."""
    from vedit.core.errors import VeditError, format_error
    from vedit.core.operation import ResourceType
    from vedit.engine.engine import EditEngine

    engine = EditEngine(load_config(args))
    params = parse_params(args.params)

    try:
        if args.operation == "removeClip":
            operation = engine.prepare({"operation": args.operation, "params": params})
            plan = engine.plan_removal(
                operation.params.start_time, operation.params.end_time, args.duration
            )
            print(plan.to_filter_graph() if plan else "(skipped)")
        elif args.backend == "preview":
            descriptor = engine.compile_preview(
                args.operation, params, resource_type=ResourceType(args.resource_type)
            )
            print(descriptor.to_path())
            for warning in descriptor.warnings:
                logger.warning(warning)
        else:
            expression = engine.compile_filter(args.operation, params)
            print(expression.serialize())
            for warning in expression.warnings:
                logger.warning(warning)
    except VeditError as e:
        print_json(format_error(e))
        sys.exit(1)


def cmd_preview(args):
    """Build a preview URL for one operation."""
    from vedit.core.operation import ResourceType
    from vedit.core.target import EditTarget
    from vedit.engine.engine import EditEngine

    engine = EditEngine(load_config(args))
    target = EditTarget(
        public_id=args.public_id,
        resource_type=ResourceType(args.resource_type),
    )
    result = engine.process(
        {"operation": args.operation, "params": parse_params(args.params),
         "resourceType": args.resource_type},
        target,
        backend=args.backend,
    )
    sys.exit(report_results([result]))


def cmd_render(args):
    """Render one operation with ffmpeg."""
    from vedit.core.operation import ResourceType
    from vedit.core.target import EditTarget
    from vedit.engine.engine import EditEngine

    input_path = Path(args.input)
    if not input_path.exists():
        logger.error(f"Input file not found: {input_path}")
        sys.exit(1)

    engine = EditEngine(load_config(args))
    if not args.quiet:
        engine.on_progress(lambda event: logger.info(f"{event.type.value}: {event.percent:.0f}%"))

    target = EditTarget(
        source=str(input_path),
        output=Path(args.output),
        resource_type=ResourceType(args.resource_type),
    )
    result = engine.process(
        {"operation": args.operation, "params": parse_params(args.params),
         "resourceType": args.resource_type},
        target,
        backend="authoritative",
    )
    sys.exit(report_results([result]))


def cmd_templates(args):
    """List available templates."""
    from vedit.catalog.templates import TemplateCatalog

    config = load_config(args)
    catalog = TemplateCatalog.load(config.template_file)
    templates = catalog.by_category(args.category) if args.category else list(catalog)

    print("\nAvailable Templates:")
    print("=" * 60)
    for template in templates:
        print(f"\n{template.id} [{template.category}]")
        print(f"  {template.description}")
        for op in template.operations:
            print(f"  - {op.operation} {json.dumps(op.params)}")


def cmd_apply_template(args):
    """Apply a template to a file or a preview resource."""
    from vedit.core.errors import NotFoundError
    from vedit.core.target import EditTarget
    from vedit.engine.engine import EditEngine
    from vedit.engine.sequencer import TemplateSequencer

    if not args.public_id and not (args.input and args.output):
        logger.error("apply-template needs either --public-id or both -i and -o")
        sys.exit(1)

    engine = EditEngine(load_config(args))
    target = EditTarget(
        source=args.input,
        public_id=args.public_id,
        output=Path(args.output) if args.output else None,
    )
    backend = args.backend or ("authoritative" if args.input else "preview")

    try:
        results = TemplateSequencer(engine).apply(args.template, target, backend=backend)
    except NotFoundError as e:
        logger.error(str(e))
        sys.exit(1)
    sys.exit(report_results(results))


def cmd_info(args):
    """Display media file information."""
    from vedit.core.errors import VeditError
    from vedit.render.ffmpeg import get_media_info

    config = load_config(args)
    for input_path in args.input:
        path = Path(input_path)

        if not path.exists():
            logger.error(f"File not found: {path}")
            continue

        try:
            info = get_media_info(path, config.ffprobe_binary)
        except VeditError as e:
            logger.error(f"Error reading {path}: {e}")
            continue

        print(f"\n{'='*60}")
        print(f"File: {info.path.name}")
        print(f"{'='*60}")
        print(f"Resolution: {info.resolution}")
        print(f"FPS: {info.fps:.2f}")
        print(f"Duration: {info.duration:.2f}s")
        print(f"Video Codec: {info.codec}")
        if info.audio_codec:
            print(f"Audio Codec: {info.audio_codec}")
        else:
            print("Audio: none")


def _add_operation_args(parser: argparse.ArgumentParser):
    parser.add_argument("operation", help="Operation kind, e.g. colorGrade")
    parser.add_argument(
        "-p", "--params",
        help="Parameters as a JSON object, or @file.json",
    )
    parser.add_argument(
        "--resource-type",
        choices=["video", "image"],
        default="video",
        help="Media type (default: video)",
    )


def main():
    parser = argparse.ArgumentParser(
        description="vedit - Video Edit Operation Engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Compile a colour grade to an ffmpeg filter
  vedit compile colorGrade --params '{"preset": "cinematic"}'

  # Text overlay limited to seconds 2-5, as a preview URL
  vedit preview addText --public-id samples/dog \\
      --params '{"text": "Hello", "startTime": 2, "endTime": 5}'

  # Remove seconds 3-7 from a local file
  vedit render removeClip -i in.mp4 -o out.mp4 --params '{"startTime": 3, "endTime": 7}'

  # Apply a template
  vedit apply-template dramatic-noir -i in.mp4 -o out.mp4
        """,
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress non-error output",
    )
    parser.add_argument(
        "-c", "--config",
        help="Configuration file (YAML or JSON)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # ==================== Catalog Commands ====================
    kinds_parser = subparsers.add_parser("kinds", help="List supported operations")
    kinds_parser.set_defaults(func=cmd_kinds)

    describe_parser = subparsers.add_parser("describe", help="Show an operation's parameters")
    describe_parser.add_argument("kind", help="Operation kind")
    describe_parser.set_defaults(func=cmd_describe)

    validate_parser = subparsers.add_parser("validate", help="Validate operation parameters")
    _add_operation_args(validate_parser)
    validate_parser.set_defaults(func=cmd_validate)

    # ==================== Compile Command ====================
    compile_parser = subparsers.add_parser(
        "compile",
        help="Compile an operation without rendering",
    )
    _add_operation_args(compile_parser)
    compile_parser.add_argument(
        "--backend",
        choices=["filter", "preview"],
        default="filter",
        help="Compile for ffmpeg filters or preview transformations (default: filter)",
    )
    compile_parser.add_argument(
        "--duration",
        type=float,
        help="Source duration in seconds (used by removeClip)",
    )
    compile_parser.set_defaults(func=cmd_compile)

    # ==================== Preview Command ====================
    preview_parser = subparsers.add_parser("preview", help="Build a preview URL")
    _add_operation_args(preview_parser)
    preview_parser.add_argument(
        "--public-id",
        required=True,
        help="Resource id on the preview service",
    )
    preview_parser.add_argument(
        "--backend",
        choices=["preview", "auto"],
        default="preview",
        help="Strategy chain to use (default: preview)",
    )
    preview_parser.set_defaults(func=cmd_preview)

    # ==================== Render Command ====================
    render_parser = subparsers.add_parser("render", help="Render one operation with ffmpeg")
    _add_operation_args(render_parser)
    render_parser.add_argument("-i", "--input", required=True, help="Input media file")
    render_parser.add_argument("-o", "--output", required=True, help="Output file path")
    render_parser.set_defaults(func=cmd_render)

    # ==================== Template Commands ====================
    templates_parser = subparsers.add_parser("templates", help="List templates")
    templates_parser.add_argument("--category", help="Only show one category")
    templates_parser.set_defaults(func=cmd_templates)

    apply_parser = subparsers.add_parser("apply-template", help="Apply a template")
    apply_parser.add_argument("template", help="Template id, e.g. cinematic-intro")
    apply_parser.add_argument("-i", "--input", help="Input media file")
    apply_parser.add_argument("-o", "--output", help="Output file path")
    apply_parser.add_argument("--public-id", help="Resource id on the preview service")
    apply_parser.add_argument(
        "--backend",
        choices=["preview", "authoritative", "auto"],
        help="Renderer (default: authoritative with -i, preview otherwise)",
    )
    apply_parser.set_defaults(func=cmd_apply_template)

    # ==================== Info Command ====================
    info_parser = subparsers.add_parser("info", help="Display media file information")
    info_parser.add_argument("input", nargs="+", help="Media files to analyze")
    info_parser.set_defaults(func=cmd_info)

    # Parse and execute
    args = parser.parse_args()

    setup_logging(
        verbose=getattr(args, 'verbose', False),
        quiet=getattr(args, 'quiet', False),
    )

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
