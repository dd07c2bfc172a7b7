"""Command-Line Interface handler for ChunkSub."""

import argparse
import logging
import os
import signal
import sys
from typing import List, Optional

from .config_loader import ConfigLoader, apply_defaults
from .log_setup import setup_logging
from .transcriber import create_transcriber
from .session import CaptionSession
from .models import RunStatus
from .exceptions import ChunkSubError, ConfigurationError

logger = logging.getLogger(__name__) # Get logger for this module

DEFAULT_CONFIG_PATH = "config.yaml"

EXIT_CODES = {
    RunStatus.COMPLETED: 0,
    RunStatus.EMPTY: 1,
    RunStatus.FAILED: 1,
    RunStatus.CANCELLED: 130,
}

class CLIHandler:
    """Parses arguments and runs caption generation for one video."""

    def __init__(self):
        self.parser = self._create_parser()
        self.session: Optional[CaptionSession] = None

    def _create_parser(self) -> argparse.ArgumentParser:
        """Creates the argument parser for the CLI."""
        parser = argparse.ArgumentParser(
            description="ChunkSub: Generate WebVTT captions for a video by transcribing its audio in fixed-length chunks.",
            formatter_class=argparse.ArgumentDefaultsHelpFormatter # Show defaults in help
        )
        parser.add_argument(
            "-v", "--video",
            required=True,
            help="Path to the input video or audio file."
        )
        parser.add_argument(
            "-o", "--output-dir",
            required=True,
            help="Directory to save the generated caption file (.vtt)."
        )
        parser.add_argument(
            "-c", "--config",
            default=None,
            help=f"Path to the configuration YAML file. '{DEFAULT_CONFIG_PATH}' is used when present."
        )
        parser.add_argument(
            "--temp-dir",
            default=None, # Default taken from config file
            help="Override the temporary directory specified in the config file."
        )
        parser.add_argument(
            "--log-level",
            default="INFO",
            choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            help="Set the logging level for console and file output."
        )
        parser.add_argument(
            "--provider",
            default=None, # Default taken from config
            choices=["gemini", "whisper"],
            help="Override the transcription provider specified in config."
        )
        parser.add_argument(
            "--language",
            default=None,
            help="Override the caption language code specified in config (e.g. 'ja', 'en')."
        )
        parser.add_argument(
            "--chunk-seconds",
            type=float,
            default=None,
            help="Override the chunk length in seconds specified in config."
        )
        return parser

    def _load_config(self, config_path: Optional[str]) -> dict:
        if config_path is None:
            if not os.path.isfile(DEFAULT_CONFIG_PATH):
                logger.info("No configuration file given, using defaults.")
                return apply_defaults({})
            config_path = DEFAULT_CONFIG_PATH
        return ConfigLoader().load_config(config_path)

    def _handle_sigint(self, signum, frame) -> None:
        """First Ctrl+C cancels at the next chunk boundary; a second one interrupts."""
        if self.session is not None and self.session.is_running and not self.session.token.cancelled:
            logger.warning("Cancellation requested. Finishing the current chunk (press Ctrl+C again to abort).")
            self.session.cancel()
            return
        raise KeyboardInterrupt

    def run(self, argv: Optional[List[str]] = None) -> None:
        """Parses arguments, sets up logging, loads config, and runs the session."""
        args = self.parser.parse_args(argv)

        # --- Setup Logging ---
        log_level = getattr(logging, args.log_level.upper(), logging.INFO)
        setup_logging(log_level=log_level, log_dir='logs', log_file='chunksub_init.log')

        # --- Load Configuration ---
        try:
            config = self._load_config(args.config)
        except ConfigurationError as e:
            logger.critical(f"Failed to load configuration from {args.config}: {e}")
            sys.exit(1)
        except FileNotFoundError:
            logger.critical(f"Configuration file not found: {args.config}")
            sys.exit(1)

        # --- Re-configure Logging with settings from Config ---
        setup_logging(log_level=log_level, log_dir=config['log_dir'], log_file=config['log_file'])

        # --- Apply CLI Overrides ---
        overrides = {
            'temp_dir': args.temp_dir,
            'provider': args.provider,
            'language': args.language,
            'chunk_seconds': args.chunk_seconds,
        }
        for key, value in overrides.items():
            if value is not None:
                logger.info(f"Overriding {key} from config with CLI argument: {value}")
                config[key] = value
        try:
            config = apply_defaults(config)
        except ConfigurationError as e:
            logger.critical(f"Invalid configuration: {e}")
            sys.exit(1)

        if not os.path.isfile(args.video):
            logger.critical(f"Input video file not found or is not a file: {args.video}")
            sys.exit(1)

        previous_handler = signal.signal(signal.SIGINT, self._handle_sigint)
        try:
            logger.info("Initializing ChunkSub components...")
            transcriber = create_transcriber(config)
            self.session = CaptionSession(transcriber, config)
            self.session.load(args.video)

            outcome = self.session.generate()
            logger.info(outcome.message)

            if outcome.has_captions and outcome.status in (RunStatus.COMPLETED, RunStatus.CANCELLED):
                output_path = self.session.save(args.output_dir)
                logger.info(f"Captions ({len(outcome.cues)} cues) saved to: {output_path}")
            sys.exit(EXIT_CODES[outcome.status])

        except ChunkSubError as e:
            logger.error(f"A ChunkSub error occurred: {e}")
            sys.exit(1)
        except KeyboardInterrupt:
            logger.warning("Process interrupted by user (Ctrl+C). Exiting.")
            sys.exit(130)
        except Exception as e:
            logger.critical(f"An unexpected critical error occurred at the top level: {e}", exc_info=True)
            sys.exit(2) # Use a different exit code for unexpected crashes
        finally:
            signal.signal(signal.SIGINT, previous_handler)

def main() -> None:
    CLIHandler().run()
