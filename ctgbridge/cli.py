"""
Command-line interface for ctgbridge

Usage:
    python -m ctgbridge rawreads.fq.gz contigs.fasta read2ctg.paf bridged.fasta --graph graph.json
    python -m ctgbridge rawreads.fq.gz contigs.fasta read2ctg.paf bridged.fasta --calibrate-only
"""

import argparse
import logging
import sys
from pathlib import Path

from ctgbridge import __version__


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ctgbridge",
        description="ctgbridge - Bridge contigs with long reads",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Auto select thresholds and bridge along the paths of an external graph
  ctgbridge reads.fq.gz contigs.fa read2ctg.paf bridged.fa --graph graph.json

  # Only estimate thresholds (written to <output-directory>/thresholds.json)
  ctgbridge reads.fq.gz contigs.fa read2ctg.paf bridged.fa --calibrate-only

Thresholds left negative are estimated from the overlaps.
"""
    )

    # Required
    parser.add_argument("rawreads", help="Raw read file (FASTA/FASTQ)")
    parser.add_argument("contigs", help="Contig file (FASTA)")
    parser.add_argument("read2ctg", help="Overlaps between raw reads and contigs (PAF)")
    parser.add_argument("bridged_contigs", help="Output file")

    # Graph
    parser.add_argument("--graph", help="Contig graph with the selected paths (JSON)")
    parser.add_argument("--ctg2ctg-file", help="Overlaps between contigs (PAF)")
    parser.add_argument("--calibrate-only", action="store_true",
                        help="Select thresholds, write thresholds.json and stop")

    # Thresholds
    parser.add_argument("--read2ctg-min-identity", type=float, default=-1,
                        help="Minimum identity of overlaps between raw reads and contigs")
    parser.add_argument("--ctg2ctg-min-identity", type=float, default=-1,
                        help="Minimum identity of overlaps between contigs")
    parser.add_argument("--read2ctg-max-overhang", type=int, default=-1,
                        help="Maximum overhang of overlaps between raw reads and contigs")
    parser.add_argument("--ctg2ctg-max-overhang", type=int, default=-1,
                        help="Maximum overhang of overlaps between contigs")
    parser.add_argument("--read-min-length", type=int, default=10000, help="Minimum raw read length")
    parser.add_argument("--ctg-min-length", type=int, default=10000, help="Minimum contig length")
    parser.add_argument("--read2ctg-min-aligned-length", type=int, default=5000,
                        help="Minimum aligned length of overlaps between raw reads and contigs")
    parser.add_argument("--ctg2ctg-min-aligned-length", type=int, default=5000,
                        help="Minimum aligned length of overlaps between contigs")
    parser.add_argument("--read2ctg-min-coverage", type=int, default=3,
                        help="Minimum coverage of links between raw reads and contigs")
    parser.add_argument("--min-contig-length", type=int, default=500,
                        help="Minimum length of bridged contigs (default: 500)")
    parser.add_argument(
        "--select-branch",
        choices=['no', 'best'],
        default='best',
        help="Branch selection: 'no' = do not select any branch, "
             "'best' = select the most probable branch (default: best)"
    )

    # Output
    parser.add_argument("-o", "--output-directory", default=".", help="Directory for output files")
    parser.add_argument("-t", "--thread-size", type=int, default=4, help="Threads (default: 4)")
    parser.add_argument("--dump", action="store_true", help="Dump intermediate files")

    # Other
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv=None):
    """Main entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Setup logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )
    logger = logging.getLogger(__name__)

    # Validate
    if not args.calibrate_only and not args.graph:
        parser.error("--graph is required unless --calibrate-only is given")

    for path in (args.rawreads, args.contigs, args.read2ctg, args.ctg2ctg_file, args.graph):
        if path and not Path(path).exists():
            parser.error(f"File not found: {path}")

    from ctgbridge.core.calibrator import CalibrationError
    from ctgbridge.engines.bridge import BridgeConfig, BridgeEngine
    from ctgbridge.utils.graph import GraphFile

    try:
        config = BridgeConfig(
            read2ctg_min_identity=args.read2ctg_min_identity,
            ctg2ctg_min_identity=args.ctg2ctg_min_identity,
            read2ctg_max_overhang=args.read2ctg_max_overhang,
            ctg2ctg_max_overhang=args.ctg2ctg_max_overhang,
            read_min_length=args.read_min_length,
            ctg_min_length=args.ctg_min_length,
            read2ctg_min_aligned_length=args.read2ctg_min_aligned_length,
            ctg2ctg_min_aligned_length=args.ctg2ctg_min_aligned_length,
            read2ctg_min_coverage=args.read2ctg_min_coverage,
            min_contig_length=args.min_contig_length,
            select_branch=args.select_branch,
            thread_size=args.thread_size,
            output_directory=args.output_directory,
            dump=args.dump,
        )

        engine = BridgeEngine(
            read_file=args.rawreads,
            contig_file=args.contigs,
            read2ctg_file=args.read2ctg,
            bridged_contig_file=args.bridged_contigs,
            graph_builder=lambda params, pool: GraphFile.load(args.graph, pool),
            config=config,
            ctg2ctg_file=args.ctg2ctg_file,
        )

        if args.calibrate_only:
            engine.auto_select_params()
            result = engine.save_thresholds()
        else:
            result = engine.run()

    except (CalibrationError, OSError, ValueError) as e:
        logger.error(str(e))
        sys.exit(1)

    logger.info(f"Output: {result}")


if __name__ == "__main__":
    main()
