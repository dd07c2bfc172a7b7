#!/usr/bin/env python3
"""
ChunkSub Batch Processing Entry Point

Processes all videos in a specified directory, ordered by size,
writing one WebVTT caption file per video into a Subs subfolder.
"""

import argparse
import logging
import os
import sys
import time
from typing import List, Tuple

# Progress bar library
from tqdm import tqdm

from chunksub.config_loader import ConfigLoader
from chunksub.log_setup import setup_logging
from chunksub.transcriber import create_transcriber
from chunksub.session import CaptionSession
from chunksub.models import RunStatus
from chunksub.exceptions import ChunkSubError, ConfigurationError, FileSystemError
from chunksub.utils import ensure_dir_exists

logger = logging.getLogger(__name__)

VIDEO_EXTENSIONS = (".mp4", ".mkv", ".mov", ".webm", ".avi", ".m4a", ".mp3", ".wav")

def find_and_sort_videos(input_dir: str) -> List[Tuple[str, int]]:
    """
    Finds all media files in the input directory and sorts them by size.

    Args:
        input_dir: The directory to search for video files.

    Returns:
        A list of (filepath, filesize) tuples, smallest first.

    Raises:
        FileNotFoundError: If the input directory doesn't exist.
        ValueError: If the input path is not a directory.
    """
    if not os.path.exists(input_dir):
        raise FileNotFoundError(f"Input directory not found: {input_dir}")
    if not os.path.isdir(input_dir):
        raise ValueError(f"Input path is not a directory: {input_dir}")

    videos = []
    logger.info(f"Scanning directory for media files: {input_dir}")
    for filename in os.listdir(input_dir):
        if filename.lower().endswith(VIDEO_EXTENSIONS):
            filepath = os.path.join(input_dir, filename)
            try:
                if os.path.isfile(filepath):
                    videos.append((filepath, os.path.getsize(filepath)))
            except OSError as e:
                logger.warning(f"Could not access file {filepath}: {e}. Skipping.")

    videos.sort(key=lambda item: item[1])
    logger.info(f"Found {len(videos)} media files. Sorted by size (smallest first).")
    return videos


def run_batch_processing():
    """Parses arguments, sets up, and runs batch caption generation."""
    parser = argparse.ArgumentParser(
        description="ChunkSub Batch: Generate WebVTT captions for every video in a directory.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument(
        "-i", "--input-dir",
        required=True,
        help="Directory containing the input video files."
    )
    parser.add_argument(
        "-c", "--config",
        default="config.yaml",
        help="Path to the configuration YAML file."
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level for console and file output."
    )
    parser.add_argument(
        "--provider",
        default=None,
        choices=["gemini", "whisper"],
        help="Override the transcription provider specified in config."
    )
    args = parser.parse_args()

    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    setup_logging(log_level=log_level, log_dir='logs', log_file='chunksub_batch_init.log')

    try:
        config = ConfigLoader().load_config(args.config)
    except (ConfigurationError, FileNotFoundError) as e:
        logger.critical(f"Failed to load configuration: {e}")
        sys.exit(1)

    setup_logging(log_level=log_level, log_dir=config['log_dir'], log_file='chunksub_batch.log')
    if args.provider:
        logger.info(f"Overriding provider from config with CLI argument: {args.provider}")
        config['provider'] = args.provider

    try:
        sorted_video_paths = [path for path, _ in find_and_sort_videos(args.input_dir)]
    except (FileNotFoundError, ValueError) as e:
        logger.critical(f"Input directory error: {e}")
        sys.exit(1)
    if not sorted_video_paths:
        logger.warning(f"No media files found in {args.input_dir}. Exiting.")
        sys.exit(0)

    subs_dir = os.path.join(args.input_dir, "Subs")
    try:
        ensure_dir_exists(subs_dir)
    except FileSystemError as e:
        logger.critical(f"Could not create output directory: {e}")
        sys.exit(1)

    # Provider and decoder are created once and reused for every file
    try:
        session = CaptionSession(create_transcriber(config), config)
    except ChunkSubError as e:
        logger.critical(f"Failed to initialize ChunkSub components: {e}")
        sys.exit(1)

    total_files = len(sorted_video_paths)
    files_processed = 0
    files_failed = 0
    batch_start_time = time.time()
    logger.info(f"--- Starting Batch Caption Generation for {total_files} files ---")

    with tqdm(total=total_files, unit="video", desc="Starting Batch") as pbar:
        for video_path in sorted_video_paths:
            video_filename = os.path.basename(video_path)
            pbar.set_description(f"Processing: {video_filename[:30]}...")
            try:
                session.load(video_path)
                outcome = session.generate()
                if outcome.status == RunStatus.COMPLETED:
                    output_path = session.save(subs_dir)
                    logger.info(f"Captions for {video_filename} saved to {output_path}")
                    files_processed += 1
                else:
                    logger.error(f"No captions written for {video_filename}: {outcome.message}")
                    files_failed += 1
            except ChunkSubError as e:
                logger.error(f"ChunkSub failed for video '{video_filename}': {e}")
                files_failed += 1
            except KeyboardInterrupt:
                logger.warning("Batch process interrupted by user (Ctrl+C). Exiting.")
                sys.exit(1)
            finally:
                pbar.update(1)

    session.reset()
    logger.info("--- Batch Caption Generation Finished ---")
    logger.info(f"Total time: {time.time() - batch_start_time:.2f} seconds")
    logger.info(f"Successfully processed: {files_processed}/{total_files} videos")
    logger.info(f"Failed: {files_failed}/{total_files} videos")
    sys.exit(1 if files_failed > 0 else 0)


if __name__ == "__main__":
    run_batch_processing()
