"""CLI entry point for the SFTP filesystem adapter."""

import argparse
import logging
import sys

import pandas as pd

import hostkey
from adapter import SftpAdapter
from config import load_config
from errors import SftpError
from transport import ParamikoTransport

LISTING_COLUMNS = ["path", "type", "size", "visibility", "timestamp"]


def _adapter(args):
    return SftpAdapter(load_config(args.config, args.env))


def _report(result, success, failure):
    if result is False:
        print(failure)
        return 1
    print(success)
    return 0


def cmd_ls(args):
    adapter = _adapter(args)
    try:
        records = adapter.list_contents(args.path, recursive=args.recursive)
    finally:
        adapter.disconnect()
    if not records:
        print(f"No entries under {args.path or '/'}")
        return 0
    df = pd.DataFrame(records, columns=LISTING_COLUMNS)
    df["timestamp"] = pd.to_datetime(df["timestamp"], unit="s")
    df["size"] = df["size"].astype("Int64")
    print(df.to_string(index=False, na_rep=""))
    return 0


def cmd_stat(args):
    adapter = _adapter(args)
    try:
        record = adapter.get_metadata(args.path)
        visibility = adapter.get_visibility(args.path) if record else False
    finally:
        adapter.disconnect()
    if record is False:
        print(f"{args.path}: not found")
        return 1
    for key, value in record.items():
        print(f"  {key:<10} {value}")
    if "visibility" not in record and visibility:
        print(f"  {'visibility':<10} {visibility['visibility']}")
    return 0


def cmd_get(args):
    adapter = _adapter(args)
    try:
        result = adapter.download(args.path, args.local or args.path.rsplit("/", 1)[-1])
    finally:
        adapter.disconnect()
    return _report(result, f"Downloaded {args.path}", f"Failed to download {args.path}")


def cmd_put(args):
    adapter = _adapter(args)
    try:
        with open(args.local, "rb") as f:
            result = adapter.write_stream(args.path, f, visibility=args.visibility)
    finally:
        adapter.disconnect()
    return _report(result, f"Uploaded {args.local} to {args.path}", f"Failed to upload {args.local}")


def cmd_rm(args):
    adapter = _adapter(args)
    try:
        if args.recursive:
            result = adapter.delete_dir(args.path)
        else:
            result = adapter.delete(args.path)
    finally:
        adapter.disconnect()
    return _report(result, f"Deleted {args.path}", f"Failed to delete {args.path}")


def cmd_mkdir(args):
    adapter = _adapter(args)
    try:
        result = adapter.create_dir(args.path)
    finally:
        adapter.disconnect()
    return _report(result, f"Created {args.path}", f"Failed to create {args.path}")


def cmd_mv(args):
    adapter = _adapter(args)
    try:
        result = adapter.rename(args.path, args.newpath)
    finally:
        adapter.disconnect()
    return _report(result, f"Renamed {args.path} to {args.newpath}", f"Failed to rename {args.path}")


def cmd_chmod(args):
    adapter = _adapter(args)
    try:
        result = adapter.set_visibility(args.path, args.visibility)
    finally:
        adapter.disconnect()
    return _report(result, f"{args.path} is now {args.visibility}", f"Failed to change {args.path}")


def cmd_fingerprint(args):
    """Print the server host key fingerprint, for pinning in config.yaml."""
    config = load_config(args.config, args.env)
    transport = ParamikoTransport(config.host, config.port, config.timeout)
    try:
        blob = transport.get_server_public_host_key()
    finally:
        transport.disconnect()
    if not blob:
        print(f"Could not retrieve host key from {config.host}:{config.port}")
        return 1
    print(f"{config.host}: {blob.split()[0]} {hostkey.fingerprint(blob)}")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="sftpfs",
        description="Path-based file operations against an SFTP server",
    )
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    parser.add_argument("--env", default=None, help="Path to .env")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command")
    sub.required = True

    p_ls = sub.add_parser("ls", help="List a directory")
    p_ls.add_argument("path", nargs="?", default="", help="Directory (relative to root)")
    p_ls.add_argument("-r", "--recursive", action="store_true", help="Include subdirectories")
    p_ls.set_defaults(func=cmd_ls)

    p_stat = sub.add_parser("stat", help="Show metadata for a path")
    p_stat.add_argument("path")
    p_stat.set_defaults(func=cmd_stat)

    p_get = sub.add_parser("get", help="Download a file")
    p_get.add_argument("path")
    p_get.add_argument("local", nargs="?", default=None, help="Local destination")
    p_get.set_defaults(func=cmd_get)

    p_put = sub.add_parser("put", help="Upload a file")
    p_put.add_argument("local")
    p_put.add_argument("path")
    p_put.add_argument("--visibility", choices=["public", "private"], default=None)
    p_put.set_defaults(func=cmd_put)

    p_rm = sub.add_parser("rm", help="Delete a file or directory")
    p_rm.add_argument("path")
    p_rm.add_argument("-r", "--recursive", action="store_true", help="Delete a directory tree")
    p_rm.set_defaults(func=cmd_rm)

    p_mkdir = sub.add_parser("mkdir", help="Create a directory (with parents)")
    p_mkdir.add_argument("path")
    p_mkdir.set_defaults(func=cmd_mkdir)

    p_mv = sub.add_parser("mv", help="Rename a path")
    p_mv.add_argument("path")
    p_mv.add_argument("newpath")
    p_mv.set_defaults(func=cmd_mv)

    p_chmod = sub.add_parser("chmod", help="Set visibility of a path")
    p_chmod.add_argument("path")
    p_chmod.add_argument("visibility", choices=["public", "private"])
    p_chmod.set_defaults(func=cmd_chmod)

    p_fp = sub.add_parser("fingerprint", help="Show the server host key fingerprint")
    p_fp.set_defaults(func=cmd_fingerprint)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )
    try:
        return args.func(args)
    except SftpError as e:
        logging.getLogger(__name__).error("%s", e)
        return 2


if __name__ == "__main__":
    sys.exit(main())
