#!/usr/bin/env python3
"""Re-encode the renditions of existing tracks.

Use after changing the configured bitrates. Each track's renditions are
rebuilt from its original upload and swapped in atomically, so listeners
already streaming keep their current file.
"""

import argparse
import sys

from riffstream.core.config import Config, load_config
from riffstream.core.database import init_database
from riffstream.core.output import setup_from_config
from riffstream.domain.media.ingest import IngestError, retranscode_track
from riffstream.domain.media.renditions import RenditionStore


def retranscode_tracks(
    track_ids: list[str], config: Config, store: RenditionStore
) -> tuple[int, int, int]:
    """Re-transcode each track.

    Returns:
        Tuple of (done, missing, failed) counts
    """
    done = 0
    missing = 0
    failed = 0

    for track_id in track_ids:
        try:
            renditions = retranscode_track(track_id, config, store)
        except IngestError as e:
            print(f"  ✗ {track_id}: {e}")
            failed += 1
            continue

        if renditions is None:
            print(f"  ? {track_id}: no such track")
            missing += 1
            continue

        tiers = ", ".join(sorted(renditions)) or "none"
        print(f"  ✓ {track_id}: {tiers}")
        done += 1

    return done, missing, failed


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Rebuild low/medium/high renditions from original uploads",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s 3f2a9c... 81be04...
  AUDIO_QUALITY_HIGH=320 %(prog)s 3f2a9c...
        """,
    )
    parser.add_argument("track_ids", nargs="+", help="Track ids to re-transcode")
    args = parser.parse_args(argv)

    config = load_config()
    setup_from_config(config.logging)
    init_database(config.storage.database_file)
    store = RenditionStore(config.storage.database_file)

    print(f"Bitrates: {config.transcode.bitrates()}")
    done, missing, failed = retranscode_tracks(args.track_ids, config, store)

    print()
    print(f"Re-transcoded: {done}")
    print(f"Missing: {missing}")
    print(f"Failed: {failed}")

    return 1 if failed or missing else 0


if __name__ == "__main__":
    sys.exit(main())
