"""
CLI Module for HDR Merge

Provides the command-line interface for merging raw brackets, one set at a
time or as a batch grouped by capture time.
"""

import argparse
import logging
import pathlib
import sys

from . import config
from .constants import PREVIEW_SIZES, VALID_BPS, VERSION
from .models import LoadOptions, SaveOptions
from .process.bracket_grouper import collect_input_files
from .process.exif_transfer import ExifTransfer
from .process.executor import HDRExecutor
from .process.hdr_processor import HDRProcessor
from .utils.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def print_progress(percent, message=None, arg=None):
    """Progress callback printing `[ 33%] message`."""
    if message is None:
        return
    text = message % arg if arg is not None else message
    logger.info("[%3d%%] %s", percent, text)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hdrmerge",
        description="Merges RAW_FILES into an HDR raw image.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Output and mask names accept these parameters:
  %%if[n]  base file name of image n (images are sorted by name;
          n = -1 is the last image, -2 the previous one, ...)
  %%iF[n]  base file name of image n without the extension
  %%id[n]  directory name of image n
  %%in[n]  numerical suffix of image n (1234 in IMG_1234.CR2)
  %%of     base file name of the output file (mask only)
  %%od     directory name of the output file (mask only)
  %%%%      a single %%

Examples:
  %(prog)s -o merged.tif IMG_0001.CR2 IMG_0002.CR2 IMG_0003.CR2
  %(prog)s -B -g 5 -m "%%od/%%iF[0]_mask.png" /path/to/shoot
        """,
    )
    parser.add_argument("files", nargs="*", metavar="RAW_FILES",
                        help="The input raw files, or folders containing them")
    parser.add_argument("-o", dest="output", metavar="OUT_FILE",
                        help="Sets OUT_FILE as the output file name")
    parser.add_argument("-a", dest="auto_name", action="store_true",
                        help="Calculates the output file name as %%id[-1]/%%iF[0]-%%in[-1]")
    parser.add_argument("-B", "--batch", action="store_true",
                        help="Batch mode: input images are grouped into bracketed sets by creation time")
    parser.add_argument("-g", dest="gap", metavar="GAP",
                        help="Batch gap, maximum difference in seconds between two images of the same set")
    parser.add_argument("--single", action="store_true",
                        help="Include single images in batch mode (the default is to skip them)")
    parser.add_argument("-b", dest="bps", metavar="BPS",
                        help="Bits per sample, can be 16, 24 or 32")
    parser.add_argument("--no-align", action="store_true",
                        help="Do not auto-align source images")
    parser.add_argument("--no-crop", action="store_true",
                        help="Do not crop the output image to the optimum size")
    parser.add_argument("-m", dest="mask", metavar="MASK_FILE",
                        help="Saves the mask to MASK_FILE as a PNG image")
    parser.add_argument("-r", dest="radius", metavar="RADIUS",
                        help="Mask blur radius, to soften transitions between images (default: 3)")
    parser.add_argument("-p", dest="preview", metavar="SIZE",
                        help="Preview size. Can be full, half or none")
    parser.add_argument("-w", dest="white_level", metavar="WHITE_LEVEL",
                        help="Use custom white level")
    parser.add_argument("-v", dest="verbose", action="count", default=0,
                        help="Verbose mode, -vv for debug mode")
    parser.add_argument("--config", metavar="FILE",
                        help="Use FILE instead of config.json")
    parser.add_argument("--version", action="version", version="%(prog)s " + VERSION)
    return parser


def _parse_number(value, convert, flag: str, default):
    if value is None:
        return default
    try:
        return convert(value)
    except ValueError:
        logger.warning("Invalid %s parameter, using default.", flag)
        return default


def build_options(args, settings: dict):
    """
    Combine command line arguments with the merge settings from the config.

    Returns:
        tuple: (LoadOptions, SaveOptions)
    """
    load_options = LoadOptions(
        align=settings.get("align", True) and not args.no_align,
        crop=settings.get("crop", True) and not args.no_crop,
        batch=args.batch,
        batch_gap=float(settings.get("batch_gap", 2.0)),
        with_singles=settings.get("with_singles", False) or args.single,
    )
    load_options.batch_gap = _parse_number(args.gap, float, "-g", load_options.batch_gap)

    white_level = _parse_number(args.white_level, int, "-w", settings.get("custom_white_level"))
    if white_level is not None:
        load_options.use_custom_wl = True
        load_options.custom_wl = int(white_level)

    save_options = SaveOptions(
        file_name=settings.get("output_pattern", "") or "",
        feather_radius=int(settings.get("feather_radius", 3)),
        mask_file_name=settings.get("mask_pattern", "") or "",
    )
    save_options.save_mask = bool(save_options.mask_file_name)

    bps = _parse_number(args.bps, int, "-b", settings.get("bps", 16))
    if bps in VALID_BPS:
        save_options.bps = bps
    else:
        logger.warning("Invalid -b parameter, using default.")

    preview = args.preview or settings.get("preview_size", "full")
    if preview in PREVIEW_SIZES:
        save_options.preview_size = PREVIEW_SIZES[preview]
    else:
        logger.warning("Invalid -p parameter, using default.")

    save_options.feather_radius = _parse_number(args.radius, int, "-r", save_options.feather_radius)

    if args.output:
        save_options.file_name = args.output
    elif args.auto_name:
        save_options.file_name = ""
    if args.mask:
        save_options.mask_file_name = args.mask
        save_options.save_mask = True
    return load_options, save_options


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    cfg = config.init(pathlib.Path(args.config) if args.config else None)
    setup_logging(args.verbose, cfg.get("log_dir", ""))

    load_options, save_options = build_options(args, cfg.get("merge_settings", {}))
    load_options.file_names = collect_input_files(args.files, cfg.get("raw_extensions", []))

    if not load_options.file_names:
        print("Error: No input files given")
        parser.print_help()
        sys.exit(1)

    exif_transfer = None
    if cfg.get("_optional_exes_available", {}).get("exiftool_exe", False):
        exif_transfer = ExifTransfer(cfg["exe_paths"]["exiftool_exe"])

    processor = HDRProcessor(exif_transfer=exif_transfer, progress_callback=print_progress)
    executor = HDRExecutor(
        load_options,
        save_options,
        processor=processor,
        notify=cfg.get("notify_on_completion", False),
    )
    outcomes = executor.execute()

    # Exit with appropriate code
    sys.exit(0 if all(o.ok for o in outcomes) else 1)


if __name__ == "__main__":
    main()
