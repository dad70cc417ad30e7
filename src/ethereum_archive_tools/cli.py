"""
Convert between RLP block exports and archive files.
"""

import argparse
import sys
from contextlib import ExitStack, nullcontext
from typing import (
    BinaryIO,
    ContextManager,
    Iterator,
    Optional,
    Sequence,
    TextIO,
    Tuple,
)

from ethereum_archive import __version__
from ethereum_archive.convert import (
    archive_hash_tree_root,
    archive_info,
    convert_archive_to_wire,
    convert_wire_to_archive,
    numbered_file_name,
)
from ethereum_archive.exceptions import (
    ArchiveException,
    ConfigurationError,
    ensure,
)
from ethereum_archive.reader import MultiFileReader

from .utils import get_stream_logger

RLP = "rlp"
RLP_WITH_RECEIPTS = "rlprc"
SSZ = "ssz"
FORMATS = (RLP, RLP_WITH_RECEIPTS, SSZ)

MIN_TARGET_SIZE = 1000 * 1000

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_CONFIGURATION_ERROR = 2

DESCRIPTION = """
Convert historical blocks between the RLP encoding exported by execution
clients and archive files.

Formats:
    rlp:   RLP encoded blocks
    rlprc: RLP encoded blocks, each followed by its receipts
    ssz:   archive file(s)
"""


def create_parser() -> argparse.ArgumentParser:
    """
    Create a command-line argument parser for the archive tool.
    """
    parser = argparse.ArgumentParser(
        prog="ethereum-archive",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-i",
        "--input-format",
        dest="input_format",
        choices=FORMATS,
        default=SSZ,
        help="format of the input data",
    )
    parser.add_argument(
        "-o",
        "--output-format",
        dest="output_format",
        choices=FORMATS,
        default=SSZ,
        help="format of the output data",
    )
    parser.add_argument(
        "-f",
        "--output",
        dest="output",
        default=None,
        help="write data to this file (default: stdout)",
    )
    parser.add_argument(
        "--target-size",
        dest="target_size",
        type=int,
        default=0,
        help=(
            "approximate input bytes per archive when converting to ssz; "
            "archives are written to numbered files. 0 writes one archive"
        ),
    )
    parser.add_argument(
        "--hash",
        action="store_true",
        help="print the hash tree root of each archive (no output written)",
    )
    parser.add_argument(
        "--info",
        action="store_true",
        help="print the block range of each archive (no output written)",
    )
    parser.add_argument(
        "--verbosity",
        dest="verbosity",
        type=int,
        default=3,
        help="log level, from 0 (critical only) to 4 (debug)",
    )
    parser.add_argument(
        "inputs",
        nargs="*",
        metavar="FILE",
        help="input files, read in order",
    )
    return parser


def validate_options(options: argparse.Namespace) -> None:
    """
    Reject option combinations that cannot work, before touching any file.
    """
    read_only = options.hash or options.info
    ensure(
        read_only or options.input_format != options.output_format,
        ConfigurationError("must provide different input and output formats"),
    )
    ensure(
        not read_only or options.input_format == SSZ,
        ConfigurationError("--hash and --info require ssz input"),
    )
    ensure(
        not (options.hash and options.info),
        ConfigurationError("--hash and --info are mutually exclusive"),
    )
    ensure(
        options.target_size >= 0,
        ConfigurationError("--target-size must not be negative"),
    )
    ensure(
        options.target_size == 0 or options.target_size >= MIN_TARGET_SIZE,
        ConfigurationError("--target-size too small"),
    )
    if options.target_size > 0:
        ensure(
            options.input_format != SSZ and options.output_format == SSZ,
            ConfigurationError("--target-size only applies to rlp to ssz"),
        )
        ensure(
            options.output is not None,
            ConfigurationError("--target-size requires an output file name"),
        )
    ensure(
        len(options.inputs) > 0,
        ConfigurationError(
            "must pass a file name with either rlp or ssz-encoded blocks"
        ),
    )


def _open_archives(paths: Sequence[str]) -> Iterator[Tuple[str, BinaryIO]]:
    for path in paths:
        with open(path, "rb") as stream:
            yield path, stream


class ArchiveTool:
    """
    Runs one conversion, as described by the parsed command-line options.
    """

    def __init__(
        self,
        options: argparse.Namespace,
        out_file: BinaryIO,
        text_file: TextIO,
    ) -> None:
        self.options = options
        self.out_file = out_file
        self.text_file = text_file
        self.log = get_stream_logger("ethereum_archive", options.verbosity)

    def run(self) -> int:
        """
        Perform the requested operation.
        """
        if self.options.info:
            self.info()
        elif self.options.hash:
            self.hash()
        elif self.options.input_format == SSZ:
            self.to_wire()
        else:
            self.to_archive()
        return EXIT_SUCCESS

    def info(self) -> None:
        """
        Print the format version and block range of each archive.
        """
        for _, stream in _open_archives(self.options.inputs):
            header = archive_info(stream)
            print(f"Format version {header.version}", file=self.text_file)
            print(
                f"First block: {header.head_block_number}, "
                f"last block: {header.last_block_number}",
                file=self.text_file,
            )

    def hash(self) -> None:
        """
        Print the hash tree root of each archive body.
        """
        for _, stream in _open_archives(self.options.inputs):
            root = archive_hash_tree_root(stream)
            print(f"hash_tree_root: {root.hex()}", file=self.text_file)

    def to_archive(self) -> None:
        """
        Convert the concatenated wire inputs into archive file(s).
        """
        output = self.options.output
        target_size = self.options.target_size

        with ExitStack() as stack:

            def open_sink(index: int) -> ContextManager[BinaryIO]:
                if output is None:
                    return nullcontext(self.out_file)
                name = output
                if target_size > 0:
                    name = numbered_file_name(output, index)
                self.log.info("Writing archive file %s", name)
                return open(name, "wb")

            streams = [
                stack.enter_context(open(path, "rb"))
                for path in self.options.inputs
            ]
            convert_wire_to_archive(
                MultiFileReader(streams),
                open_sink,
                self.options.input_format == RLP_WITH_RECEIPTS,
                target_size,
            )

    def to_wire(self) -> None:
        """
        Convert archive file(s) into a single stream of wire encoded blocks.
        """
        output = self.options.output
        with ExitStack() as stack:
            if output is None:
                sink = self.out_file
            else:
                self.log.info("Writing RLP file %s", output)
                sink = stack.enter_context(open(output, "wb"))
            convert_archive_to_wire(
                _open_archives(self.options.inputs),
                sink,
                self.options.output_format == RLP_WITH_RECEIPTS,
            )


def main(
    args: Optional[Sequence[str]] = None,
    out_file: Optional[BinaryIO] = None,
    text_file: Optional[TextIO] = None,
) -> int:
    """Run the archive tool with the given options."""
    parser = create_parser()
    options = parser.parse_args(args)

    if out_file is None:
        out_file = sys.stdout.buffer

    if text_file is None:
        text_file = sys.stdout

    try:
        validate_options(options)
    except ConfigurationError as e:
        parser.print_usage(sys.stderr)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIGURATION_ERROR

    try:
        return ArchiveTool(options, out_file, text_file).run()
    except (ArchiveException, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
