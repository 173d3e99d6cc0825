#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging
import re
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional, TextIO, Tuple


logger = logging.getLogger(__name__)


# ---------------------------
# Limits
# ---------------------------

MAX_CITY_NAME_LEN = 20
MAX_FLIGHTS_PER_CITY = 5
MAX_DEFAULT_SCHEDULES = 50

# Minute of the day, 0-1439
TIME_MIN = 0
TIME_MAX = (60 * 24) - 1
TIME_NULL = -1  # input only; unused slots store None

NIL = -1  # end of a free/active list

_INT_TOKEN = re.compile(r"[+-]?[0-9]+")


# ---------------------------
# Errors
# ---------------------------

class ScheduleError(ValueError):
    """A command could not be carried out. State is left unchanged."""

    message = "Schedule error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.message)


class CityNotFoundError(ScheduleError):
    def __init__(self, city: str) -> None:
        super().__init__(f"No schedule for {city}")
        self.city = city


class DuplicateScheduleError(ScheduleError):
    def __init__(self, city: str) -> None:
        super().__init__(f"There is a schedule of {city} already.")
        self.city = city


class NoFreeSchedulesError(ScheduleError):
    message = "Sorry no more free schedules."


class ScheduleFullError(ScheduleError):
    message = "Sorry we cannot add more flights on this city."


class InvalidTimeError(ScheduleError):
    message = "Invalid time value"


class InvalidCapacityError(ScheduleError):
    message = "Invalid capacity value"


class InvalidCityError(ScheduleError):
    message = "Invalid city name"


class FlightNotFoundError(ScheduleError):
    message = "Sorry there's no flight scheduled on this time."


class NoSeatsError(ScheduleError):
    message = "Sorry there's no more seats available!"


class SeatsAllEmptyError(ScheduleError):
    message = "All the seats on this flights are empty!"


# ---------------------------
# Enums / Data Model
# ---------------------------

class Membership(str, Enum):
    FREE = "FREE"
    ACTIVE = "ACTIVE"


def check_time(time: int) -> Optional[int]:
    """Validate an input minute. TIME_NULL maps to None (no time)."""
    if time == TIME_NULL:
        return None
    if TIME_MIN <= time <= TIME_MAX:
        return time
    raise InvalidTimeError()


def normalize_city(city: str) -> str:
    name = city[:MAX_CITY_NAME_LEN]
    if not name:
        raise InvalidCityError()
    return name


@dataclass
class Flight:
    time: Optional[int] = None  # None = unused slot
    available: int = 0
    capacity: int = 0

    @property
    def is_empty(self) -> bool:
        return self.time is None

    def reset(self) -> None:
        self.time = None
        self.available = 0
        self.capacity = 0

    def as_tuple(self) -> Tuple[int, int, int]:
        if self.time is None:
            raise ValueError("Unused flight slot has no time.")
        return (self.time, self.available, self.capacity)


def flight_sort_key(flight: Flight) -> Tuple[int, int]:
    # unused slots sort first, real flights ascending by time
    if flight.time is None:
        return (0, 0)
    return (1, flight.time)


def _empty_slots() -> List[Flight]:
    return [Flight() for _ in range(MAX_FLIGHTS_PER_CITY)]


@dataclass
class Schedule:
    """The flights to one destination.

    Records live inside a SchedulePool; ``next``/``prev`` are indices of the
    neighbouring records in whichever pool list ``membership`` names.
    """

    destination: str = ""
    flights: List[Flight] = field(default_factory=_empty_slots)
    membership: Membership = Membership.FREE
    next: int = NIL
    prev: int = NIL

    def reset(self) -> None:
        """Clear destination, flights and links. Membership is the pool's to set."""
        self.destination = ""
        for flight in self.flights:
            flight.reset()
        self.next = NIL
        self.prev = NIL

    @property
    def is_empty(self) -> bool:
        return not self.destination and all(f.is_empty for f in self.flights)

    def _sort_flights(self) -> None:
        self.flights.sort(key=flight_sort_key)

    def _find_exact(self, time: int) -> Optional[Flight]:
        slot_time = check_time(time)
        if slot_time is None:
            return None
        for flight in self.flights:
            if flight.time == slot_time:
                return flight
        return None

    def add_flight(self, time: int, capacity: int) -> Flight:
        slot_time = check_time(time)
        if slot_time is None:
            raise InvalidTimeError()
        if capacity <= 0:
            raise InvalidCapacityError()

        for flight in self.flights:
            if flight.is_empty:
                flight.time = slot_time
                flight.available = capacity
                flight.capacity = capacity
                self._sort_flights()
                return flight
        raise ScheduleFullError()

    def remove_flight(self, time: int) -> None:
        flight = self._find_exact(time)
        if flight is None:
            raise FlightNotFoundError()
        flight.reset()

    def list_flights(self) -> List[Tuple[int, int, int]]:
        return [f.as_tuple() for f in self.flights if not f.is_empty]

    def schedule_seat(self, requested_time: int) -> Flight:
        """
        Book a seat on the first flight leaving at or after requested_time.
        Only that flight is considered: if it is full the booking fails even
        when a later flight has seats. TIME_NULL means "earliest flight".
        """
        lower = check_time(requested_time)
        for flight in self.flights:
            if flight.is_empty:
                continue
            if lower is None or flight.time >= lower:
                if flight.available > 0:
                    flight.available -= 1
                    return flight
                raise NoSeatsError()
        raise NoSeatsError()

    def unschedule_seat(self, time: int) -> Flight:
        flight = self._find_exact(time)
        if flight is None:
            raise FlightNotFoundError()
        if flight.available >= flight.capacity:
            raise SeatsAllEmptyError()
        flight.available += 1
        return flight


# ---------------------------
# Record Pool
# ---------------------------

class SchedulePool:
    """
    Fixed arena of Schedule records split into two doubly linked lists,
    free and active, threaded through the records by index.

    allocate() pops the head of the free list and pushes it on the head of
    the active list; release() unlinks a record from anywhere in the active
    list and pushes it on the head of the free list. Both are O(1), and the
    most recently released record is the next one handed out.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 0:
            raise ValueError(f"Pool capacity must be >= 0 (got {capacity}).")
        self._records: List[Schedule] = [Schedule() for _ in range(capacity)]
        self._heads: Dict[Membership, int] = {}
        self._counts: Dict[Membership, int] = {}
        self.reset()

    @property
    def capacity(self) -> int:
        return len(self._records)

    @property
    def free_count(self) -> int:
        return self._counts[Membership.FREE]

    @property
    def active_count(self) -> int:
        return self._counts[Membership.ACTIVE]

    def reset(self) -> None:
        """Empty every record and chain them all onto the free list, slot 0 first."""
        n = len(self._records)
        for i, rec in enumerate(self._records):
            rec.reset()
            rec.membership = Membership.FREE
            rec.prev = i - 1 if i > 0 else NIL
            rec.next = i + 1 if i < n - 1 else NIL
        self._heads = {Membership.FREE: 0 if n else NIL, Membership.ACTIVE: NIL}
        self._counts = {Membership.FREE: n, Membership.ACTIVE: 0}

    def record(self, ref: int) -> Schedule:
        if not 0 <= ref < len(self._records):
            raise IndexError(f"No schedule slot {ref} (pool capacity {len(self._records)}).")
        return self._records[ref]

    def _unlink(self, ref: int) -> None:
        rec = self._records[ref]
        if rec.prev == NIL:
            # head of its list (possibly the only element)
            self._heads[rec.membership] = rec.next
        else:
            self._records[rec.prev].next = rec.next
        if rec.next != NIL:
            self._records[rec.next].prev = rec.prev
        rec.next = NIL
        rec.prev = NIL
        self._counts[rec.membership] -= 1

    def _push_front(self, ref: int, membership: Membership) -> None:
        rec = self._records[ref]
        head = self._heads[membership]
        rec.membership = membership
        rec.prev = NIL
        rec.next = head
        if head != NIL:
            self._records[head].prev = ref
        self._heads[membership] = ref
        self._counts[membership] += 1

    def allocate(self) -> Optional[int]:
        """Move the first free record to the front of the active list.

        Returns the record's reference, or None when no free record is left.
        """
        ref = self._heads[Membership.FREE]
        if ref == NIL:
            logger.debug("allocate: no free schedule slots (capacity=%d)", self.capacity)
            return None
        self._unlink(ref)
        self._records[ref].reset()
        self._push_front(ref, Membership.ACTIVE)
        logger.debug("allocate: slot %d (free=%d active=%d)", ref, self.free_count, self.active_count)
        return ref

    def release(self, ref: Optional[int]) -> None:
        if ref is None:
            return
        rec = self.record(ref)
        if rec.membership != Membership.ACTIVE:
            raise ValueError(f"Schedule slot {ref} is not active.")
        self._unlink(ref)
        rec.reset()
        self._push_front(ref, Membership.FREE)
        logger.debug("release: slot %d (free=%d active=%d)", ref, self.free_count, self.active_count)

    def _walk(self, membership: Membership) -> Iterator[int]:
        ref = self._heads[membership]
        while ref != NIL:
            yield ref
            ref = self._records[ref].next

    def active_refs(self) -> Iterator[int]:
        return self._walk(Membership.ACTIVE)

    def free_refs(self) -> Iterator[int]:
        return self._walk(Membership.FREE)

    def find_active(self, name: str) -> Optional[int]:
        for ref in self.active_refs():
            if self._records[ref].destination == name:
                return ref
        return None

    def list_active(self) -> List[str]:
        return [self._records[ref].destination for ref in self.active_refs()]

    def check_invariants(self) -> None:
        """Walk both lists and raise AssertionError on any structural fault."""
        n = len(self._records)
        seen = set()
        names = set()

        for membership in Membership:
            prev = NIL
            count = 0
            ref = self._heads[membership]
            while ref != NIL:
                _expect(0 <= ref < n, f"{membership.value} list points outside the pool: {ref}")
                _expect(ref not in seen, f"slot {ref} is linked more than once")
                seen.add(ref)
                rec = self._records[ref]
                _expect(rec.membership == membership,
                        f"slot {ref} on {membership.value} list is marked {rec.membership.value}")
                _expect(rec.prev == prev, f"slot {ref} has prev={rec.prev}, expected {prev}")

                if membership == Membership.FREE:
                    _expect(rec.is_empty, f"free slot {ref} is not reset")
                else:
                    _expect(bool(rec.destination), f"active slot {ref} has no destination")
                    _expect(rec.destination not in names, f"duplicate destination {rec.destination!r}")
                    names.add(rec.destination)

                times = []
                for flight in rec.flights:
                    if flight.is_empty:
                        _expect(flight.available == 0 and flight.capacity == 0,
                                f"slot {ref} has seats on an unused flight")
                    else:
                        _expect(0 <= flight.available <= flight.capacity,
                                f"slot {ref} flight {flight.time} has bad seat counts")
                        times.append(flight.time)
                _expect(times == sorted(times), f"slot {ref} flights are not sorted by time")

                prev = ref
                ref = rec.next
                count += 1
            _expect(count == self._counts[membership],
                    f"{membership.value} list has {count} slots, counted {self._counts[membership]}")

        _expect(len(seen) == n, f"{n - len(seen)} slot(s) are on neither list")


def _expect(condition: bool, message: str) -> None:
    if not condition:
        raise AssertionError(message)


# ---------------------------
# Core Service
# ---------------------------

class FlightScheduleService:
    def __init__(self, pool: SchedulePool) -> None:
        self.pool = pool

    def get_schedule(self, city: str) -> Schedule:
        ref = self.pool.find_active(city[:MAX_CITY_NAME_LEN])
        if ref is None:
            raise CityNotFoundError(city)
        return self.pool.record(ref)

    def add_schedule(self, city: str) -> Schedule:
        name = normalize_city(city)
        if self.pool.find_active(name) is not None:
            raise DuplicateScheduleError(name)
        ref = self.pool.allocate()
        if ref is None:
            raise NoFreeSchedulesError()
        schedule = self.pool.record(ref)
        schedule.destination = name
        logger.debug("added schedule %r in slot %d", name, ref)
        return schedule

    def remove_schedule(self, city: str) -> None:
        ref = self.pool.find_active(city[:MAX_CITY_NAME_LEN])
        if ref is None:
            raise CityNotFoundError(city)
        self.pool.release(ref)
        logger.debug("removed schedule %r from slot %d", city, ref)

    def list_schedules(self) -> List[str]:
        return self.pool.list_active()

    def list_flights(self, city: str) -> List[Tuple[int, int, int]]:
        return self.get_schedule(city).list_flights()

    def add_flight(self, city: str, time: int, capacity: int) -> Flight:
        flight = self.get_schedule(city).add_flight(time, capacity)
        logger.debug("%s: added flight at %d with %d seats", city, time, capacity)
        return flight

    def remove_flight(self, city: str, time: int) -> None:
        self.get_schedule(city).remove_flight(time)
        logger.debug("%s: removed flight at %d", city, time)

    def schedule_seat(self, city: str, time: int) -> Flight:
        flight = self.get_schedule(city).schedule_seat(time)
        logger.debug("%s: booked seat on %d, %d left", city, flight.time, flight.available)
        return flight

    def unschedule_seat(self, city: str, time: int) -> Flight:
        flight = self.get_schedule(city).unschedule_seat(time)
        logger.debug("%s: released seat on %d, %d left", city, flight.time, flight.available)
        return flight


# ---------------------------
# Input
# ---------------------------

def _is_letter(ch: str) -> bool:
    return ("A" <= ch <= "Z") or ("a" <= ch <= "z")


class CommandReader:
    """Reads commands, city names and integers from a character stream."""

    def __init__(self, stream: TextIO) -> None:
        self.stream = stream
        self._pushback: Optional[str] = None

    def _getc(self) -> str:
        if self._pushback is not None:
            ch, self._pushback = self._pushback, None
            return ch
        return self.stream.read(1)

    def _skip_space(self) -> str:
        ch = self._getc()
        while ch and ch.isspace():
            ch = self._getc()
        return ch

    def read_command(self) -> Optional[str]:
        """Next non-blank character, or None at end of input."""
        return self._skip_space() or None

    def read_city(self) -> str:
        """
        Skip anything that is not a letter, then take the rest of the line.
        Trailing blanks are dropped and the name is cut to MAX_CITY_NAME_LEN.
        """
        ch = self._getc()
        while ch and not _is_letter(ch):
            ch = self._getc()
        if not ch:
            raise EOFError("End of input while reading a city name.")
        chars = [ch]
        ch = self._getc()
        while ch and ch != "\n":
            chars.append(ch)
            ch = self._getc()
        return "".join(chars).rstrip()[:MAX_CITY_NAME_LEN]

    def read_int(self) -> Optional[int]:
        """Next whitespace-delimited token as an int, or None if it is not one."""
        ch = self._skip_space()
        if not ch:
            raise EOFError("End of input while reading a number.")
        token = []
        while ch and not ch.isspace():
            token.append(ch)
            ch = self._getc()
        if ch:
            self._pushback = ch
        text = "".join(token)
        if not _INT_TOKEN.fullmatch(text):
            return None
        return int(text)


def read_time(reader: CommandReader) -> int:
    value = reader.read_int()
    if value is None:
        raise InvalidTimeError()
    check_time(value)
    return value


def read_capacity(reader: CommandReader) -> int:
    value = reader.read_int()
    if value is None or value <= 0:
        raise InvalidCapacityError()
    return value


# ---------------------------
# CLI
# ---------------------------

HELP_TEXT = (
    "Here are the possible commands:\n"
    "A <city name>     - Add an active empty flight schedule for\n"
    "                    <city name>\n"
    "L                 - List cities which have an active schedule\n"
    "l <city name>     - List the flights for <city name>\n"
    "a <city name>\n"
    "<time> <capacity> - Add a flight for <city name> @ <time> time\n"
    "                    with <capacity> seats\n"
    "r <city name>\n"
    "<time>            - Remove a flight from <city name> whose time is\n"
    "                    <time>\n"
    "s <city name>\n"
    "<time>            - Attempt to schedule seat on flight to\n"
    "                    <city name> at <time> or next closest time on\n"
    "                    which there is an available seat\n"
    "u <city name>\n"
    "<time>            - unschedule a seat from flight to <city name>\n"
    "                    at <time>\n"
    "R <city name>     - Remove schedule for <city name>\n"
    "h                 - print this help message\n"
    "q                 - quit"
)

BAD_COMMAND = "Bad command. Use h to see help."
QUIT_COMMAND = "q"


def print_command_help() -> None:
    print(HELP_TEXT)


def print_flights(city: str, flights: List[Tuple[int, int, int]]) -> None:
    line = f"The flights for {city} are:"
    for time, available, capacity in flights:
        line += f" ({time}, {available}, {capacity})"
    print(line)


def cmd_add_schedule(reader: CommandReader, svc: FlightScheduleService) -> None:
    svc.add_schedule(reader.read_city())


def cmd_list_schedules(reader: CommandReader, svc: FlightScheduleService) -> None:
    for name in svc.list_schedules():
        print(name)


def cmd_list_flights(reader: CommandReader, svc: FlightScheduleService) -> None:
    city = reader.read_city()
    print_flights(city, svc.list_flights(city))


def cmd_add_flight(reader: CommandReader, svc: FlightScheduleService) -> None:
    city = reader.read_city()
    # city first: numbers are left unread for an unknown city
    svc.get_schedule(city)
    time = read_time(reader)
    capacity = read_capacity(reader)
    svc.add_flight(city, time, capacity)


def cmd_remove_flight(reader: CommandReader, svc: FlightScheduleService) -> None:
    city = reader.read_city()
    svc.get_schedule(city)
    svc.remove_flight(city, read_time(reader))


def cmd_schedule_seat(reader: CommandReader, svc: FlightScheduleService) -> None:
    city = reader.read_city()
    svc.get_schedule(city)
    svc.schedule_seat(city, read_time(reader))


def cmd_unschedule_seat(reader: CommandReader, svc: FlightScheduleService) -> None:
    city = reader.read_city()
    svc.get_schedule(city)
    svc.unschedule_seat(city, read_time(reader))


def cmd_remove_schedule(reader: CommandReader, svc: FlightScheduleService) -> None:
    svc.remove_schedule(reader.read_city())


def cmd_help(reader: CommandReader, svc: FlightScheduleService) -> None:
    print_command_help()


COMMANDS: Dict[str, Callable[[CommandReader, FlightScheduleService], None]] = {
    "A": cmd_add_schedule,
    "L": cmd_list_schedules,
    "l": cmd_list_flights,
    "a": cmd_add_flight,
    "r": cmd_remove_flight,
    "s": cmd_schedule_seat,
    "u": cmd_unschedule_seat,
    "R": cmd_remove_schedule,
    "h": cmd_help,
}


def run(reader: CommandReader, svc: FlightScheduleService) -> int:
    """Process commands until 'q' or end of input."""
    while True:
        command = reader.read_command()
        if command is None or command == QUIT_COMMAND:
            break

        handler = COMMANDS.get(command)
        if handler is None:
            print(BAD_COMMAND)
            continue

        try:
            handler(reader, svc)
        except ScheduleError as e:
            print(e)
        except EOFError:
            logger.debug("input ended inside command %r", command)
            break
    return 0


def parse_pool_size(raw: Optional[str]) -> int:
    if raw is None:
        return MAX_DEFAULT_SCHEDULES
    try:
        n = int(raw.strip())
    except ValueError:
        n = 0
    if n <= 0:
        raise ValueError("Bad number of default max schedules specified.")
    return n


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flight-schedules",
        description="Manage flight schedules for a fixed number of destination cities.",
    )
    parser.add_argument(
        "max_schedules",
        nargs="?",
        default=None,
        help=f"Number of schedule slots (default: {MAX_DEFAULT_SCHEDULES})",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for messages on stderr (default: WARNING)",
    )
    parser.add_argument(
        "--no-help",
        action="store_true",
        help="Do not print the command help at startup",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        n = parse_pool_size(args.max_schedules)
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    pool = SchedulePool(n)
    pool.check_invariants()
    logger.info("schedule pool ready with %d slots", n)
    svc = FlightScheduleService(pool)

    if not args.no_help:
        print_command_help()
    return run(CommandReader(sys.stdin), svc)


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
