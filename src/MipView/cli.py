"""Command-line interface for the mip viewer."""

import argparse
import logging
import os
import sys

from .config import ViewerConfig, UNAVAILABLE_POLICIES
from .core import DirectoryPayloadStore, TextureError, setup_logging

logger = logging.getLogger("mip_viewer")


def _print_summary(bundle) -> None:
    description = bundle.description
    print(
        f"{bundle.texture_id}: {description.format.name} "
        f"{description.base_width}x{description.base_height}, {len(description.mips)} mips, "
        f"canvas {bundle.layout.canvas_width}x{bundle.layout.canvas_height}"
    )
    for upload, rect in zip(bundle.uploads, bundle.layout.rects):
        if upload.decoded is not None:
            status = f"decoded {upload.decoded.packing.value}"
        elif upload.native is not None:
            status = "native upload"
        else:
            status = f"unavailable ({upload.error})"
        print(
            f"  mip {upload.level}: {upload.descriptor.width}x{upload.descriptor.height} "
            f"at ({rect.origin_x:+.4f}, {rect.origin_y:+.4f}) "
            f"size ({rect.extent_x:.4f}, {rect.extent_y:.4f}) -> {status}"
        )


def main():
    """Parse CLI arguments, assemble the texture, and write the atlas preview."""
    parser = argparse.ArgumentParser(
        description="Decode a block-compressed mip chain and render its staircase atlas",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  MipView 3f2a9c --store ./vfs
  MipView 3f2a9c --store ./vfs --output atlas.png --workers 4
  MipView 3f2a9c --config viewer.yaml --summary
  MipView --generate-config
        """
    )
    parser.add_argument("texture_id", nargs="?", help="Texture id (file-name suffix in the store)")
    parser.add_argument("--store", "-s", help="Directory holding description and payload files")
    parser.add_argument("--output", "-o", help="Output image path")
    parser.add_argument("--config", "-c", help="Path to config YAML")
    parser.add_argument("--workers", type=int, help="Parallel mip decode workers")
    parser.add_argument("--on-unavailable", choices=UNAVAILABLE_POLICIES,
                        help="How to treat mips that cannot be decoded")
    parser.add_argument("--no-native-upload", action="store_true",
                        help="Treat BC6/BC7 as unsupported instead of native-upload-only")
    parser.add_argument("--summary", action="store_true",
                        help="Print layout and decode status for every mip")
    parser.add_argument("--no-progress", action="store_true")
    parser.add_argument("--generate-config", action="store_true",
                        help="Generate default viewer.yaml")
    parser.add_argument("--log-level",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])

    args = parser.parse_args()

    if args.generate_config:
        config = ViewerConfig()
        dest = args.config or "viewer.yaml"
        if os.path.isdir(dest):
            dest = os.path.join(dest, "viewer.yaml")
        config.to_yaml(dest)
        print(f"Generated default {dest}")
        return

    # Surface early config warnings before logging is fully configured.
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")

    if not args.texture_id:
        parser.print_usage()
        print("Error: texture_id is required")
        sys.exit(1)

    if args.config:
        if not os.path.exists(args.config):
            logger.error("Config file not found: %s", args.config)
            print(f"Error: Config file not found: {args.config}")
            sys.exit(1)
        try:
            config = ViewerConfig.from_yaml(args.config)
        except ValueError as e:
            logger.error("Invalid config file '%s': %s", args.config, e)
            print(f"Error: Invalid config: {e}")
            sys.exit(1)
    else:
        config = ViewerConfig()

    # CLI overrides
    if args.store:
        config.store_dir = args.store
    if args.output:
        config.output_path = args.output
    if args.workers is not None:
        config.max_workers = args.workers
    if args.on_unavailable:
        config.preview.on_unavailable = args.on_unavailable
    if args.no_native_upload:
        config.decode.allow_native_upload = False
    if args.no_progress:
        config.show_progress = False
    if args.log_level:
        config.log_level = args.log_level

    try:
        config.validate()
    except ValueError as e:
        logger.error(str(e))
        print(f"Error: {e}")
        sys.exit(1)

    if not os.path.isdir(config.store_dir):
        logger.error("Store directory not found: %s", config.store_dir)
        print(f"Error: Store directory not found: {config.store_dir}")
        sys.exit(1)

    setup_logging(config.log_level, config.log_file or None)

    from .assembly import TextureAssembler, UnavailableMipError
    from .phases.preview import PreviewRenderTarget

    store = DirectoryPayloadStore(config.store_dir)
    assembler = TextureAssembler(config, store)
    try:
        bundle = assembler.assemble(args.texture_id)
    except UnavailableMipError as exc:
        logger.error("Aborted: %s", exc)
        print(f"Error: {exc}")
        sys.exit(2)
    except TextureError as exc:
        logger.error("Failed to assemble %s: %s", args.texture_id, exc)
        print(f"Error: {exc}")
        sys.exit(1)

    if args.summary:
        _print_summary(bundle)

    target = PreviewRenderTarget(config)
    assembler.present(bundle, target)
    try:
        target.save(config.output_path)
    except (OSError, ValueError) as exc:
        logger.error("Failed to write %s: %s", config.output_path, exc)
        print(f"Error: Could not write {config.output_path}: {exc}")
        sys.exit(1)
    print(f"Wrote {config.output_path}")


if __name__ == "__main__":
    main()
