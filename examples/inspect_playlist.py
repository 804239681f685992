"""
Playlist inspection example.

Shows the DVR window of one position and which segments a range expression
would select, without downloading any media.
"""

from dvrkit import default_positions, fetch_playlist, format_timestamp_jst, parse_time_range, select_range

def main():
    position = default_positions()[0]
    segments = fetch_playlist(position.base_url)
    if not segments:
        print("Playlist is empty")
        return

    print(f"Position {position.code}: {len(segments)} segments")
    print(f"  earliest: {format_timestamp_jst(segments[0].start_time)}")
    print(f"  latest:   {format_timestamp_jst(segments[-1].end_time)}")

    window = parse_time_range("5m/LATEST")
    selection = select_range(window, segments)
    print(f"\n'5m/LATEST' selects segments [{selection.start_index}, {selection.end_index})")
    for segment in segments[selection.start_index:selection.end_index]:
        print(f"  {format_timestamp_jst(segment.start_time)}  {segment.path}")

if __name__ == "__main__":
    main()
