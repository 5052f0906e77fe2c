from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from beartype import beartype

from .annotations import SceneContinuityError
from .config import ExportSettings, load_settings
from .export import export_clips
from .timeline import load_project_snapshot


@beartype
def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Export timeline clips incrementally and write clip_mapping.json"
    )
    parser.add_argument(
        "snapshot",
        type=Path,
        help="Path to the JSON snapshot of the host project (sequences, tracks, clips)",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Explicit .env file to load (default: search from the working directory)",
    )
    parser.add_argument(
        "--project-root",
        type=Path,
        default=None,
        help="Project root holding voiceovers/ and subtitles/",
    )
    parser.add_argument(
        "--locale",
        type=str,
        default=None,
        help="Locale folder, e.g. zh or en (default: CLIPSYNC_LOCALE or zh)",
    )
    parser.add_argument(
        "--subproject",
        type=str,
        default=None,
        help="Subproject name, e.g. hook (default: main project)",
    )
    parser.add_argument(
        "--sequence",
        type=str,
        default=None,
        help="Source sequence name (default: processed)",
    )
    parser.add_argument(
        "--preset",
        type=str,
        default=None,
        help="Encoder preset path",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Write clips here directly instead of {root}/voiceovers/{locale}/ (standalone mode)",
    )
    parser.add_argument(
        "--subtitle",
        type=Path,
        default=None,
        help="Annotation file overriding {root}/subtitles/{locale}.txt",
    )
    parser.add_argument(
        "--scenes",
        type=int,
        nargs="+",
        default=None,
        help="Discrete scene numbers, e.g. 16 25",
    )
    parser.add_argument(
        "--scene-start",
        type=int,
        default=None,
        help="Scene range start",
    )
    parser.add_argument(
        "--scene-end",
        type=int,
        default=None,
        help="Scene range end (inclusive)",
    )
    parser.add_argument(
        "--source-indices",
        type=int,
        nargs="+",
        default=None,
        help="Discrete source indices, e.g. 48 52",
    )
    parser.add_argument(
        "--source-start",
        type=int,
        default=None,
        help="Source index range start",
    )
    parser.add_argument(
        "--source-end",
        type=int,
        default=None,
        help="Source index range end (inclusive)",
    )
    parser.add_argument(
        "--sync-mapping-only",
        action="store_true",
        help="Only rescan the sequence and rewrite clip_mapping.json, no cleanup or export",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        help="Logging level (default: INFO)",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        settings = load_settings(args.env_file)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    _apply_overrides(settings, args)

    try:
        sequences = load_project_snapshot(args.snapshot)
    except (OSError, ValueError) as e:
        print(f"Error: Cannot read project snapshot: {e}", file=sys.stderr)
        return 2

    try:
        result = export_clips(settings, sequences)
    except SceneContinuityError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 3

    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    return 0 if result.success else 1


def _apply_overrides(settings: ExportSettings, args: argparse.Namespace) -> None:
    """CLI flags win over values loaded from the environment."""
    if args.project_root is not None:
        settings.project_root = args.project_root
    if args.locale:
        settings.locale = args.locale
    if args.subproject is not None:
        settings.subproject = args.subproject
    if args.sequence is not None:
        settings.sequence_name = args.sequence
    if args.preset is not None:
        settings.preset_path = args.preset
    if args.output_dir is not None:
        settings.output_dir = args.output_dir
        settings.standalone = True
    if args.subtitle is not None:
        settings.subtitle_path = args.subtitle

    # Any selection flag replaces the whole selection from the environment
    scene_flags = (args.scenes, args.scene_start, args.scene_end)
    source_flags = (args.source_indices, args.source_start, args.source_end)
    if any(flag is not None for flag in scene_flags + source_flags):
        settings.scenes = list(args.scenes or [])
        settings.scene_start = args.scene_start
        settings.scene_end = args.scene_end
        settings.source_indices = list(args.source_indices or [])
        settings.source_start = args.source_start
        settings.source_end = args.source_end

    if args.sync_mapping_only:
        settings.sync_mapping_only = True


if __name__ == "__main__":
    sys.exit(main())
