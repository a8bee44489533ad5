__version__ = "0.1.0"

import sys
import logging
import argparse

from typing import Optional, Sequence

from tqdm import tqdm  # type: ignore[import]

from bentree.torrent import Torrent, MetaInfoError
from bentree.client_info import ClientInfo
from bentree.value import format_value
from bentree.tracker import (HTTPTracker,
                             AnnounceInfoError,
                             TrackerConnectionError)
from bentree.bencode import (decode_file,
                             BencodeDecodeError,
                             max_supported_depth,
                             DEFAULT_MAX_DEPTH)


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def depth_limit(raw: str) -> int:
    depth = int(raw)
    if not 0 <= depth <= max_supported_depth():
        raise argparse.ArgumentTypeError(
            f"must be between 0 and {max_supported_depth()}")
    return depth


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bentree")
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("--max-depth", type=depth_limit,
                        default=DEFAULT_MAX_DEPTH)

    commands = parser.add_subparsers(dest="command", required=True)

    show = commands.add_parser("show", help="print the decoded value tree")
    show.add_argument("file", type=str)

    info = commands.add_parser("info", help="print torrent metainfo")
    info.add_argument("file", type=str)

    check = commands.add_parser("check", help="decode files, report failures")
    check.add_argument("files", type=str, nargs="+")
    check.add_argument("-p", "--progress", action="store_true")

    announce = commands.add_parser("announce", help="query an HTTP tracker")
    announce.add_argument("file", type=str)

    return parser


async def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format=LOG_FORMAT)

    try:
        if args.command == "show":
            print(format_value(decode_file(args.file,
                                           max_depth=args.max_depth)))
        elif args.command == "info":
            print_info(Torrent(decode_file(args.file,
                                           max_depth=args.max_depth)))
        elif args.command == "check":
            return check_files(args.files, args.max_depth, args.progress)
        elif args.command == "announce":
            await announce(Torrent(decode_file(args.file,
                                               max_depth=args.max_depth)))
    except (BencodeDecodeError, MetaInfoError,
            AnnounceInfoError, TrackerConnectionError) as err:
        print(f"bentree: {err}", file=sys.stderr)
        return 1
    return 0


def print_info(torrent: Torrent) -> None:
    print(f"name:         {torrent.info.name}")
    print(f"size:         {torrent.size}")
    print(f"piece length: {torrent.info.piece_length}")
    print(f"pieces:       {len(torrent.info.pieces)}")
    print(f"info hash:    {torrent.info_hash.hex()}")
    print(f"private:      {torrent.info.private}")
    if torrent.info.is_multifile:
        for file_item in torrent.info.files:
            print(f"file:         {'/'.join(file_item.path)} "
                  f"({file_item.length})")
    for url in torrent.announce_urls:
        print(f"tracker:      {url}")


def check_files(paths: Sequence[str], max_depth: int, progress: bool) -> int:
    failed = 0
    for path in tqdm(paths, disable=not progress, unit="file"):
        try:
            decode_file(path, max_depth=max_depth)
        except BencodeDecodeError as err:
            failed += 1
            tqdm.write(f"{path}: {err}", file=sys.stderr)
    logger.debug("Checked %d files, %d failed", len(paths), failed)
    return 1 if failed else 0


async def announce(torrent: Torrent) -> None:
    urls = list(filter(HTTPTracker.is_compatible, torrent.announce_urls))
    if not urls:
        raise TrackerConnectionError("No HTTP tracker in metainfo")

    async with HTTPTracker(urls[0], torrent, ClientInfo()) as tracker:
        response = await tracker.ask()

    if response.warning_message:
        logger.warning("Tracker warning: %s", response.warning_message)
    print(f"interval:   {response.interval}")
    print(f"complete:   {response.complete}")
    print(f"incomplete: {response.incomplete}")
    for peer in response.peers:
        print(f"peer:       {peer}")
