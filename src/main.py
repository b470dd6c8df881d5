# Entry point for drawing a bracket from a participant roster

import argparse
import os
import sys
import yaml
from core.models import Participant
from core.elimination import (
    build_bracket,
    advance_byes,
    assign_bout_numbers,
    get_matches_by_round,
    get_round_name,
)


def load_participants(file_path):
    """Read a roster: a list of participants, or a mapping with a 'participants' list."""
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file) or []
    if isinstance(data, dict):
        data = data.get('participants', [])

    participants = []
    for index, item in enumerate(data, start=1):
        attributes = {}
        if item.get('dojang'):
            attributes['dojang'] = item['dojang']
        participants.append(Participant(
            id=int(item.get('id', index)),
            name=str(item['name']),
            seed=item.get('seed'),
            attributes=attributes,
        ))
    return participants


def format_participant(participant):
    if participant is None:
        return 'TBD'
    if participant.is_bye:
        return participant.name
    dojang = participant.attributes.get('dojang')
    return f"{participant.name} ({dojang})" if dojang else participant.name


def format_bracket(bracket):
    lines = ["TOURNAMENT BRACKET", "=================="]
    for round_number in range(1, bracket.rounds + 1):
        round_name = get_round_name(round_number, bracket.rounds).upper()
        lines.append("")
        lines.append(round_name)
        lines.append('-' * len(round_name))
        for match in get_matches_by_round(bracket, round_number):
            header = f"Match {match.position}"
            if match.bout_number is not None:
                header += f" (Bout {match.bout_number})"
            lines.append(f"{header}:")
            lines.append(f"  {format_participant(match.participant1)}")
            lines.append(f"  {format_participant(match.participant2)}")
            if match.winner is not None:
                lines.append(f"  Winner: {format_participant(match.winner)}")
    return '\n'.join(lines)


def main(argv=None):
    script_dir = os.path.dirname(__file__)
    base_dir = os.path.dirname(script_dir)

    parser = argparse.ArgumentParser(description='Draw a single elimination bracket from a roster.')
    parser.add_argument('participants_file', nargs='?',
                        default=os.path.join(base_dir, 'data', 'participants.yaml'),
                        help='YAML roster of participants')
    parser.add_argument('--seeded', action='store_true', help='Use the standard seeded draw')
    parser.add_argument('--advance-byes', action='store_true', help='Resolve bye matches before printing')
    args = parser.parse_args(argv)

    try:
        participants = load_participants(args.participants_file)
        bracket = build_bracket(participants, seeded=args.seeded)
    except (OSError, yaml.YAMLError, KeyError, TypeError, AttributeError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    assign_bout_numbers(bracket)
    if args.advance_byes:
        advance_byes(bracket)

    print(format_bracket(bracket))
    return 0


if __name__ == '__main__':
    sys.exit(main())
