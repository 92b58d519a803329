#!/usr/bin/env python3
"""
MonkeyFinder - browse the monkeys of the world and rate your favourites.
Fetches the monkey list from a public JSON feed once per run and keeps your
star ratings in memory while the program is running.
"""

import argparse
import json
import logging
import os
import sys
from typing import Dict, Optional, Tuple

from colorama import init, Fore, Style

from finder.models import Monkey
from finder.services import (
    DEFAULT_MONKEYS_URL, MAX_RATING, MonkeyNotFoundError, MonkeyService,
    RatingService, haversine_km,
)

# Initialize colorama for cross-platform colored terminal output
init(autoreset=True)

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

_CONSOLE_FORMAT = '[%(levelname)s] %(name)s: %(message)s'
_FILE_FORMAT = '[%(asctime)s] %(levelname)s %(name)s: %(message)s'


def setup_logging(level: str = 'WARNING',
                  log_file: Optional[str] = None) -> logging.Logger:
    """Configure the ``monkeyfinder`` logger shared by the CLI, the web GUI
    and the ``finder`` services (``monkeyfinder.service``,
    ``monkeyfinder.ratings``, ...).

    Safe to call repeatedly: the console handler is attached once and each
    *log_file* at most once, so re-applying the level from config does not
    duplicate output.

    Args:
        level:    Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
                  Unknown names fall back to WARNING.
        log_file: Optional path of a timestamped log file; its directory is
                  created when missing.  If the file cannot be opened a
                  warning is logged and console logging carries on.

    Returns:
        Configured logger instance.
    """
    numeric = getattr(logging, str(level).upper(), logging.WARNING)
    logger = logging.getLogger('monkeyfinder')

    # FileHandler subclasses StreamHandler, so match the exact type
    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
        logger.addHandler(handler)

    if log_file:
        path = os.path.abspath(log_file)
        if not any(isinstance(h, logging.FileHandler) and h.baseFilename == path
                   for h in logger.handlers):
            try:
                os.makedirs(os.path.dirname(path), exist_ok=True)
                fh = logging.FileHandler(path)
            except OSError as e:
                logger.warning("Could not open log file %s: %s", path, e)
            else:
                fh.setFormatter(logging.Formatter(_FILE_FORMAT))
                logger.addHandler(fh)

    logger.setLevel(numeric)
    return logger


# Module-level logger used throughout monkeyfinder.py
logger = setup_logging()

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

DEFAULT_CONFIG: Dict = {
    'monkeys_url': DEFAULT_MONKEYS_URL,
    'api_timeout_seconds': None,
    'log_level': 'WARNING',
    'gui_host': '127.0.0.1',
    'gui_port': 5000,
}


def load_config(config_path: str = 'config.json') -> Dict:
    """Load configuration from an optional JSON file with environment overrides.

    A missing file is not an error: the defaults are used.  Environment
    variables take precedence over config file values:

    - MONKEYFINDER_URL overrides monkeys_url
    - MONKEYFINDER_TIMEOUT overrides api_timeout_seconds
    - MONKEYFINDER_LOG_LEVEL overrides log_level
    """
    config = dict(DEFAULT_CONFIG)

    if config_path and os.path.exists(config_path):
        try:
            with open(config_path, 'r') as f:
                config.update(json.load(f))
        except json.JSONDecodeError as e:
            print(f"{Fore.RED}Error parsing config file: {e}")
            sys.exit(1)

    if os.getenv('MONKEYFINDER_URL'):
        config['monkeys_url'] = os.getenv('MONKEYFINDER_URL')
    if os.getenv('MONKEYFINDER_TIMEOUT'):
        config['api_timeout_seconds'] = os.getenv('MONKEYFINDER_TIMEOUT')
    if os.getenv('MONKEYFINDER_LOG_LEVEL'):
        config['log_level'] = os.getenv('MONKEYFINDER_LOG_LEVEL')

    url = str(config.get('monkeys_url') or '')
    if not url.startswith(('http://', 'https://')):
        print(f"{Fore.RED}Error: monkeys_url must be an http(s) URL")
        print(f"{Fore.YELLOW}Your provided URL: {url}")
        sys.exit(1)

    timeout = config.get('api_timeout_seconds')
    if timeout is not None:
        try:
            timeout = float(timeout)
        except (TypeError, ValueError):
            timeout = -1.0
        if timeout <= 0:
            print(f"{Fore.RED}Error: api_timeout_seconds must be a positive number")
            sys.exit(1)
        config['api_timeout_seconds'] = timeout

    return config


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def format_stars(rating: int) -> str:
    """Render a 0-5 rating as stars; 0 reads as ``unrated``."""
    if rating <= 0:
        return 'unrated'
    rating = min(rating, MAX_RATING)
    return '★' * rating + '☆' * (MAX_RATING - rating)


def parse_coordinates(text: str) -> Optional[Tuple[float, float]]:
    """Parse ``"lat,lon"`` into a tuple, or ``None`` if malformed/out of range."""
    if not text or not isinstance(text, str):
        return None
    parts = text.split(',')
    if len(parts) != 2:
        return None
    try:
        lat, lon = float(parts[0]), float(parts[1])
    except ValueError:
        return None
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
        return None
    return lat, lon


class MonkeyFinder:
    """Main MonkeyFinder application"""

    def __init__(self, config_path: str = 'config.json'):
        self._log = logging.getLogger('monkeyfinder.cli')
        self.config = load_config(config_path)

        # Re-apply log level from config (allows "log_level": "DEBUG" in config.json)
        setup_logging(self.config.get('log_level', 'WARNING'))

        self.monkey_service = MonkeyService(
            url=self.config['monkeys_url'],
            timeout=self.config.get('api_timeout_seconds'),
        )
        self.rating_service = RatingService()
        self.rating_service.subscribe(self._on_rating_changed)

    def _on_rating_changed(self):
        self._log.debug("Ratings changed (%d rated)", len(self.rating_service.get_all()))

    def load_monkeys(self) -> bool:
        """Fetch (or reuse) the monkey list"""
        print(f"{Fore.CYAN}Fetching monkeys...")
        monkeys = self.monkey_service.get_monkeys()
        if not monkeys:
            print(f"{Fore.RED}No monkeys found. Check your connection or the monkeys_url setting.")
            return False
        print(f"{Fore.GREEN}Found {len(monkeys)} monkeys!")
        return True

    def display_monkey_info(self, monkey: Monkey):
        """Display information about a monkey"""
        rating = self.rating_service.get_rating(monkey)

        print(f"\n{Fore.GREEN}{'='*60}")
        print(f"{Fore.CYAN}{Style.BRIGHT}🐒 {monkey.name}")
        print(f"{Fore.GREEN}{'='*60}")
        print(f"{Fore.YELLOW}Location: {Fore.WHITE}{monkey.location}")
        print(f"{Fore.YELLOW}Population: {Fore.WHITE}{monkey.population:,}")
        print(f"{Fore.YELLOW}Coordinates: {Fore.WHITE}{monkey.latitude:.4f}, {monkey.longitude:.4f}")
        print(f"{Fore.YELLOW}Rating: {Fore.WHITE}{format_stars(rating)}")
        if monkey.details:
            print(f"\n{Fore.YELLOW}Details:")
            print(f"{Fore.WHITE}{monkey.details}")
        if monkey.image_url:
            print(f"\n{Fore.YELLOW}Image: {Fore.WHITE}{monkey.image_url}")
        print(f"{Fore.YELLOW}Map: {Fore.WHITE}{monkey.map_url}")
        print(f"{Fore.GREEN}{'='*60}\n")

    def list_monkeys(self):
        """Print every monkey with its current rating"""
        monkeys = self.monkey_service.get_monkeys()
        if not monkeys:
            print(f"{Fore.RED}No monkeys loaded.")
            return
        print(f"\n{Fore.CYAN}{Style.BRIGHT}Monkeys")
        print(f"{Fore.WHITE}{'='*60}")
        for i, monkey in enumerate(monkeys, 1):
            stars = format_stars(self.rating_service.get_rating(monkey))
            print(f"{Fore.YELLOW}{i:2}. {Fore.WHITE}{monkey.name:<30} "
                  f"{Fore.CYAN}{monkey.location[:18]:<18} {Fore.WHITE}{stars}")
        print(f"{Fore.WHITE}{'='*60}")

    def show_stats(self):
        """Display monkey and rating statistics"""
        monkeys = self.monkey_service.get_monkeys()
        if not monkeys:
            print(f"{Fore.RED}No monkeys loaded.")
            return

        ratings = [self.rating_service.get_rating(m) for m in monkeys]
        rated = [r for r in ratings if r > 0]
        total_population = sum(m.population for m in monkeys)

        print(f"\n{Fore.CYAN}{Style.BRIGHT}Monkey Statistics")
        print(f"{Fore.WHITE}{'='*40}")
        print(f"{Fore.YELLOW}Total monkeys: {Fore.WHITE}{len(monkeys)}")
        print(f"{Fore.YELLOW}Total population: {Fore.WHITE}{total_population:,}")
        print(f"{Fore.YELLOW}Rated: {Fore.WHITE}{len(rated)}")
        if rated:
            print(f"{Fore.YELLOW}Average rating: {Fore.WHITE}{sum(rated) / len(rated):.1f}")
        print(f"{Fore.WHITE}{'='*40}")

    def find_monkey(self, name: str) -> Optional[Monkey]:
        """Look up *name* (loading the list if needed) and display it"""
        self.monkey_service.get_monkeys()
        try:
            monkey = self.monkey_service.find_monkey_by_name(name)
        except MonkeyNotFoundError:
            print(f"{Fore.RED}No monkey named '{name}'.")
            return None
        self.display_monkey_info(monkey)
        return monkey

    def find_closest(self, latitude: float, longitude: float) -> Optional[Monkey]:
        """Display the monkey nearest to the given coordinates"""
        monkey = self.monkey_service.get_closest_monkey(latitude, longitude)
        if monkey is None:
            print(f"{Fore.RED}No monkeys loaded.")
            return None
        distance = haversine_km(latitude, longitude, monkey.latitude, monkey.longitude)
        print(f"{Fore.GREEN}Closest monkey is {distance:,.0f} km away:")
        self.display_monkey_info(monkey)
        return monkey

    def rate_monkey_interactive(self):
        """Ask for a monkey name and a star rating"""
        name = input(f"{Fore.YELLOW}Monkey name: {Fore.WHITE}").strip()
        try:
            monkey = self.monkey_service.find_monkey_by_name(name)
        except MonkeyNotFoundError:
            print(f"{Fore.RED}No monkey named '{name}'.")
            return

        current = self.rating_service.get_rating(monkey)
        print(f"{Fore.CYAN}Current rating: {format_stars(current)}")
        raw = input(f"{Fore.YELLOW}Stars (0-{MAX_RATING}): {Fore.WHITE}").strip()
        try:
            stored = self.rating_service.set_rating(monkey, int(raw))
        except ValueError:
            print(f"{Fore.RED}Please enter a whole number.")
            return
        print(f"{Fore.GREEN}{monkey.name}: {format_stars(stored)}")

    def find_monkey_interactive(self):
        name = input(f"{Fore.YELLOW}Monkey name: {Fore.WHITE}").strip()
        if name:
            self.find_monkey(name)

    def find_closest_interactive(self):
        """Ask for coordinates and show the nearest monkey"""
        raw = input(f"{Fore.YELLOW}Your location as lat,lon (e.g. 47.6,-122.3): {Fore.WHITE}")
        coords = parse_coordinates(raw.strip())
        if coords is None:
            print(f"{Fore.RED}Invalid coordinates.")
            return
        self.find_closest(*coords)

    def interactive_mode(self):
        """Run in interactive mode"""
        if not self.load_monkeys():
            return

        while True:
            print(f"\n{Fore.CYAN}{Style.BRIGHT}MonkeyFinder")
            print(f"{Fore.WHITE}{'='*40}")
            print(f"{Fore.YELLOW}1. {Fore.WHITE}List monkeys")
            print(f"{Fore.YELLOW}2. {Fore.WHITE}Show a monkey")
            print(f"{Fore.YELLOW}3. {Fore.WHITE}Rate a monkey")
            print(f"{Fore.YELLOW}4. {Fore.WHITE}Find the closest monkey")
            print(f"{Fore.YELLOW}5. {Fore.WHITE}Show stats")
            print(f"{Fore.YELLOW}q. {Fore.WHITE}Quit")
            print(f"{Fore.WHITE}{'='*40}")

            choice = input(f"\n{Fore.GREEN}Enter your choice: {Fore.WHITE}").strip().lower()

            if choice == 'q':
                print(f"\n{Fore.CYAN}Thanks for using MonkeyFinder! 🐒")
                break
            elif choice == '1':
                self.list_monkeys()
            elif choice == '2':
                self.find_monkey_interactive()
            elif choice == '3':
                self.rate_monkey_interactive()
            elif choice == '4':
                self.find_closest_interactive()
            elif choice == '5':
                self.show_stats()
            else:
                print(f"{Fore.RED}Invalid choice. Please try again.")


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(
        description='MonkeyFinder - browse and rate monkeys',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python3 monkeyfinder.py                          # Run in interactive mode
  python3 monkeyfinder.py --list                   # List all monkeys and exit
  python3 monkeyfinder.py --find "Golden Lion Tamarin"
  python3 monkeyfinder.py --closest 47.6,-122.3    # Nearest monkey to Seattle
  python3 monkeyfinder.py --stats                  # Show statistics only
        """
    )

    parser.add_argument(
        '--config', '-c',
        default='config.json',
        help='Path to config file (default: config.json, optional)'
    )
    parser.add_argument(
        '--list', '-l',
        action='store_true',
        help='List all monkeys and exit'
    )
    parser.add_argument(
        '--find', '-f',
        type=str,
        metavar='NAME',
        help='Show one monkey by exact name and exit'
    )
    parser.add_argument(
        '--closest',
        type=str,
        metavar='LAT,LON',
        help='Show the monkey closest to the given coordinates and exit'
    )
    parser.add_argument(
        '--stats', '-s',
        action='store_true',
        help='Show statistics and exit'
    )
    parser.add_argument(
        '--log-level',
        type=str,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Override the configured log level'
    )

    args = parser.parse_args()

    print(f"{Fore.CYAN}{Style.BRIGHT}")
    print("  __  __             _              ")
    print(" |  \\/  | ___  _ __ | | _____ _   _ ")
    print(" | |\\/| |/ _ \\| '_ \\| |/ / _ \\ | | |")
    print(" | |  | | (_) | | | |   <  __/ |_| |")
    print(" |_|  |_|\\___/|_| |_|_|\\_\\___|\\__, |")
    print("                              |___/ ")
    print(f"{Style.RESET_ALL}")
    print(f"{Fore.WHITE}MonkeyFinder\n")

    try:
        finder = MonkeyFinder(config_path=args.config)
        if args.log_level:
            setup_logging(args.log_level)

        coords = None
        if args.closest:
            coords = parse_coordinates(args.closest)
            if coords is None:
                print(f"{Fore.RED}Error: --closest expects LAT,LON within valid ranges")
                sys.exit(1)

        if not (args.list or args.find or args.closest or args.stats):
            finder.interactive_mode()
            return

        if not finder.load_monkeys():
            sys.exit(1)

        if args.list:
            finder.list_monkeys()
        if args.stats:
            finder.show_stats()
        if args.find and finder.find_monkey(args.find) is None:
            sys.exit(1)
        if coords:
            finder.find_closest(*coords)
    except KeyboardInterrupt:
        print(f"\n{Fore.CYAN}Goodbye! 🐒")
        sys.exit(0)


if __name__ == "__main__":
    main()
