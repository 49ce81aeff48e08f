import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from .core.config import load_settings
from .core.constants import FORMAT_NAMES, IMAGE_FORMATS
from .core.diagrams.renderer import PlantUmlRenderError
from .core.diagrams.service import LOAD_MODES, DiagramService
from .core.introspection.loader import AnalysisError
from .core.introspection.models import DiagramModel


def setup_logging(log_level: str = "INFO") -> None:
    """Configure application logging (stderr; stdout carries the diagrams)."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr)
        ]
    )
    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="classdiagram",
        description="classdiagram - class diagrams from Python types, source files or metadata tables",
    )
    parser.add_argument(
        "target",
        nargs="?",
        help="Module name, .py file, or YAML/JSON metadata table"
    )
    parser.add_argument(
        "--class",
        dest="classes",
        action="append",
        default=[],
        metavar="NAME",
        help="Only these classes (repeatable). Without a target, NAME is looked up directly"
    )
    parser.add_argument(
        "--mode",
        choices=LOAD_MODES,
        default="auto",
        help="How to read the target (auto picks metadata for .yaml/.yml/.json)"
    )
    parser.add_argument(
        "--format",
        choices=FORMAT_NAMES,
        default=None,
        help="Output format (default from config)"
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write the diagram text to this file instead of stdout"
    )
    parser.add_argument(
        "--render",
        choices=IMAGE_FORMATS,
        default=None,
        help="Also render an image through the PlantUML server"
    )
    parser.add_argument("--member-limit", type=int, default=None, help="Members shown per class")
    parser.add_argument("--method-limit", type=int, default=None, help="Methods shown per class")
    parser.add_argument("--width", type=int, default=None, help="ASCII box width")
    parser.add_argument("--config", type=str, default=None, help="YAML settings file")
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )
    return parser


def _select(diagrams: List[DiagramModel], names: Sequence[str]) -> Optional[List[DiagramModel]]:
    """Diagrams matching the requested class names (by name or key)."""
    if not names:
        return diagrams

    selected = []
    for name in names:
        matches = [d for d in diagrams if name in (d.class_name, d.key)]
        if not matches:
            logger.error("Class '%s' not found in target", name)
            return None
        selected.extend(matches)
    return selected


def _collect(service: DiagramService, args: argparse.Namespace) -> Optional[List[DiagramModel]]:
    if args.target:
        return _select(service.load(args.target, args.mode), args.classes)

    diagrams = []
    for name in args.classes:
        diagram = service.analyze_type(name)
        if diagram is None:
            logger.error("Type '%s' not found", name)
            return None
        diagrams.append(diagram)
    return diagrams


def _image_path(args: argparse.Namespace, diagrams: List[DiagramModel]) -> Path:
    if args.output:
        return Path(args.output).with_suffix(f".{args.render}")
    return Path(f"{diagrams[0].class_name}.{args.render}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for classdiagram."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.target and not args.classes:
        parser.error("a target or at least one --class is required")

    setup_logging(args.log_level)

    try:
        settings = load_settings(args.config).with_overrides(
            member_limit=args.member_limit,
            method_limit=args.method_limit,
            box_width=args.width,
        )
    except ValueError as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    service = DiagramService(settings)

    try:
        diagrams = _collect(service, args)
    except AnalysisError as e:
        logger.error("%s", e)
        return 1

    if not diagrams:
        if diagrams is not None:
            logger.error("No public types found in %s", args.target)
        return 1

    text = service.format(diagrams, args.format)
    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
        logger.info("Wrote %d diagrams to %s", len(diagrams), args.output)
    else:
        sys.stdout.write(text)

    if args.render:
        image_path = _image_path(args, diagrams)
        try:
            image = service.render_image(service.format(diagrams, "plantuml"), args.render)
        except PlantUmlRenderError as e:
            logger.error("Image rendering failed: %s", e)
            return 1
        image_path.write_bytes(image)
        logger.info("Wrote %s image to %s", args.render.upper(), image_path)

    return 0


if __name__ == "__main__":
    sys.exit(main())
