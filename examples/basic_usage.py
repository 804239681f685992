"""
Basic DVRKit usage example.

Archives the last ten minutes available in the DVR window of every monitored
position into local/archive.
"""

import logging

from dvrkit import ArchiveConfig, archive_from_config

# Configure logging to see dvrkit internal logs
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

def main():
    config = ArchiveConfig(output_dir="local/archive")

    print("Archiving the last 10 minutes (Ctrl+C finalizes what was written)...")
    paths = archive_from_config(config, "10m/LATEST")

    for position, path in paths.items():
        print(f"  {position}: {path or 'nothing written'}")

if __name__ == "__main__":
    main()
