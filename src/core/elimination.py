"""
Single elimination bracket generation and management.
"""
import math
from typing import List, Dict, Optional, Union

from .models import (
    Participant, Match, BracketStructure,
    BYE_NAME, SINGLE_ELIMINATION,
)


class BracketError(ValueError):
    """Base class for bracket construction and result errors."""


class InvalidParticipantsError(BracketError):
    """The participant roster cannot produce a bracket."""


class MatchNotFoundError(BracketError):
    """No match with the given id exists in the bracket."""


class MatchNotReadyError(BracketError):
    """The match is still waiting for one of its participants."""


class InvalidWinnerError(BracketError):
    """The winner does not occupy either slot of the match."""


class MatchAlreadyDecidedError(BracketError):
    """The result can no longer change because the next match is decided."""


class InvalidScoreError(BracketError):
    """A match score is not a non-negative integer."""


def get_round_name(round_number: int, total_rounds: int) -> str:
    """Get the name of a round based on how many slots it has."""
    teams_in_round = 2 ** (total_rounds - round_number + 1)
    if teams_in_round == 2:
        return "Final"
    elif teams_in_round == 4:
        return "Semifinal"
    elif teams_in_round == 8:
        return "Quarterfinal"
    else:
        return f"Round of {teams_in_round}"


def calculate_bracket_size(num_participants: int) -> int:
    """Calculate the bracket size (next power of 2)."""
    if num_participants <= 0:
        return 0
    return 2 ** math.ceil(math.log2(num_participants))


def calculate_byes(num_participants: int) -> int:
    """Calculate number of byes needed."""
    return calculate_bracket_size(num_participants) - num_participants


def calculate_total_rounds(num_participants: int) -> int:
    bracket_size = calculate_bracket_size(num_participants)
    if bracket_size == 0:
        return 0
    return int(math.log2(bracket_size))


def _generate_bracket_order(bracket_size: int) -> List[int]:
    """
    Generate the standard tournament bracket order.
    This ensures that if all higher seeds win, they meet in the proper rounds.

    For 8 slots: [1, 8, 4, 5, 2, 7, 3, 6]
    This gives matchups: 1v8, 4v5, 2v7, 3v6
    Winners: 1v4 side, 2v3 side
    Final: 1v2 (if chalk)
    """
    if bracket_size < 2:
        return [1] if bracket_size == 1 else []
    if bracket_size == 2:
        return [1, 2]

    half_size = bracket_size // 2
    upper_half = _generate_bracket_order(half_size)

    # Pair each seed with its complement in the doubled bracket
    result = []
    for seed in upper_half:
        result.extend([seed, bracket_size + 1 - seed])

    return result


def match_id_for(round_number: int, position: int, total_rounds: int) -> int:
    """
    Closed-form match id for (round, position).

    Ids run 1..bracket_size-1, round by round and left to right, so the id is
    the number of matches in all earlier rounds plus the position.
    """
    bracket_size = 2 ** total_rounds
    return bracket_size - 2 ** (total_rounds - round_number + 1) + position


def _make_byes(count: int, first_seed: int) -> List[Participant]:
    return [
        Participant(id=-1 - i, name=BYE_NAME, seed=first_seed + i)
        for i in range(count)
    ]


def _validate_participants(participants: List[Participant]):
    if not participants:
        raise InvalidParticipantsError("At least one participant is required to build a bracket")

    seen = set()
    for participant in participants:
        if participant.id < 0:
            raise InvalidParticipantsError(
                f"Participant id {participant.id} is negative; negative ids are reserved for byes"
            )
        if participant.id in seen:
            raise InvalidParticipantsError(f"Duplicate participant id {participant.id}")
        seen.add(participant.id)


def _rank_participants(participants: List[Participant]) -> List[Participant]:
    """
    Order by seed, falling back to the 1-based insertion index where no seed
    is set. Seeds below 1 count as unset.
    """
    indexed = list(enumerate(participants, start=1))
    indexed.sort(key=lambda item: item[1].seed if item[1].seed and item[1].seed >= 1 else item[0])
    return [participant for _, participant in indexed]


def build_bracket(participants: List[Participant], seeded: bool = False,
                  bracket_type: str = SINGLE_ELIMINATION) -> BracketStructure:
    """
    Build a single elimination bracket.

    With ``seeded`` False the participants fill round-1 slots left to right in
    seed order. With ``seeded`` True they are placed by the standard
    tournament draw so the top seeds can only meet in the latest rounds.
    Byes pad the field to a power of two and always rank after every real
    participant. The input list is not modified.
    """
    if bracket_type != SINGLE_ELIMINATION:
        raise BracketError(f"Unsupported bracket type: {bracket_type}")
    _validate_participants(participants)

    num_participants = len(participants)
    bracket_size = calculate_bracket_size(num_participants)
    total_rounds = calculate_total_rounds(num_participants)

    ranked = _rank_participants(participants)
    ranked = ranked + _make_byes(bracket_size - num_participants, num_participants + 1)

    if seeded:
        slots = [ranked[rank - 1] for rank in _generate_bracket_order(bracket_size)]
    else:
        slots = ranked

    matches = []
    for round_number in range(1, total_rounds + 1):
        matches_in_round = bracket_size // 2 ** round_number
        for position in range(1, matches_in_round + 1):
            match = Match(
                id=match_id_for(round_number, position, total_rounds),
                round=round_number,
                position=position,
            )

            if round_number == 1:
                match.participant1 = slots[(position - 1) * 2]
                match.participant2 = slots[(position - 1) * 2 + 1]
            else:
                match.previous_match_ids = (
                    match_id_for(round_number - 1, position * 2 - 1, total_rounds),
                    match_id_for(round_number - 1, position * 2, total_rounds),
                )

            if round_number < total_rounds:
                match.next_match_id = match_id_for(round_number + 1, (position + 1) // 2, total_rounds)

            matches.append(match)

    return BracketStructure(
        matches=matches,
        rounds=total_rounds,
        total_participants=num_participants,
        bracket_size=bracket_size,
        bracket_type=bracket_type,
        participants=slots,
    )


def get_match(bracket: BracketStructure, match_id: int) -> Match:
    """Look up a match by id; ids index the flat match list."""
    index = match_id - 1 if isinstance(match_id, int) else -1
    if index < 0 or index >= len(bracket.matches):
        raise MatchNotFoundError(f"Match {match_id} not found in bracket")
    return bracket.matches[index]


def get_matches_by_round(bracket: BracketStructure, round_number: int) -> List[Match]:
    return sorted(
        (m for m in bracket.matches if m.round == round_number),
        key=lambda m: m.position,
    )


def get_final_match(bracket: BracketStructure) -> Optional[Match]:
    if bracket.rounds < 1:
        return None
    return get_match(bracket, match_id_for(bracket.rounds, 1, bracket.rounds))


def _check_score(score):
    if score is None:
        return
    if not isinstance(score, int) or isinstance(score, bool) or score < 0:
        raise InvalidScoreError(f"Score {score!r} must be a non-negative integer")


def update_match_result(bracket: BracketStructure, match_id: int,
                        winner: Union[Participant, int],
                        score1: Optional[int] = None,
                        score2: Optional[int] = None) -> BracketStructure:
    """
    Record the winner of a match and move them into the next match.

    Only one hop is taken: the winner lands in the slot of the next match fed
    by this match, and nothing further is resolved. Recording a different
    winner is allowed as a correction until the next match is decided.
    Scores are optional and belong to slot 1 and slot 2 respectively.
    A bye never beats a real participant.
    """
    match = get_match(bracket, match_id)
    participant1, participant2 = match.participants
    if participant1 is None or participant2 is None:
        raise MatchNotReadyError(f"Match {match_id} is still waiting for a participant")

    if isinstance(winner, Participant):
        winner_id = winner.id
    elif isinstance(winner, int) and not isinstance(winner, bool):
        winner_id = winner
    else:
        raise InvalidWinnerError(f"Winner of match {match_id} must be a participant or participant id, got {winner!r}")

    if winner_id == participant1.id:
        winner, loser = participant1, participant2
    elif winner_id == participant2.id:
        winner, loser = participant2, participant1
    else:
        raise InvalidWinnerError(f"Participant {winner_id} is not playing in match {match_id}")

    if winner.is_bye and not loser.is_bye:
        raise InvalidWinnerError(f"A bye cannot beat {loser.name} in match {match_id}")

    _check_score(score1)
    _check_score(score2)

    next_match = get_match(bracket, match.next_match_id) if match.next_match_id else None
    if (next_match is not None and next_match.winner is not None
            and match.winner is not None and match.winner.id != winner.id):
        raise MatchAlreadyDecidedError(
            f"Match {match_id} cannot change: match {next_match.id} is already decided"
        )

    match.winner = winner
    match.score1 = score1
    match.score2 = score2

    if next_match is not None:
        if next_match.previous_match_ids[0] == match.id:
            next_match.participant1 = winner
        elif next_match.previous_match_ids[1] == match.id:
            next_match.participant2 = winner

    return bracket


def is_bye_match(match: Match) -> bool:
    """True when both slots are filled and at least one holds a bye."""
    participant1, participant2 = match.participants
    if participant1 is None or participant2 is None:
        return False
    return participant1.is_bye or participant2.is_bye


def advance_byes(bracket: BracketStructure) -> List[int]:
    """
    Resolve every undecided bye match, returning the ids it decided.

    The real participant advances; when both slots are byes, a bye advances so
    the walkover continues into the next round. Matches are stored in round
    order, so a single pass follows chains of byes to the end.
    """
    resolved = []
    for match in bracket.matches:
        if match.winner is not None or not is_bye_match(match):
            continue
        participant1, participant2 = match.participants
        winner = participant2 if participant1.is_bye and not participant2.is_bye else participant1
        update_match_result(bracket, match.id, winner)
        resolved.append(match.id)
    return resolved


def get_active_matches(bracket: BracketStructure) -> List[Match]:
    """Matches that are ready to be played: no winner yet and both sides known."""
    active = []
    for match in bracket.matches:
        if match.winner is not None:
            continue

        if match.round == 1:
            participant1, participant2 = match.participants
            if participant1 is not None and (participant2 is not None or participant1.is_bye):
                active.append(match)
            continue

        feeder1, feeder2 = (get_match(bracket, mid) for mid in match.previous_match_ids)
        if feeder1.winner is not None and feeder2.winner is not None:
            active.append(match)

    return active


def is_tournament_complete(bracket: BracketStructure) -> bool:
    final_match = get_final_match(bracket)
    return final_match is not None and final_match.winner is not None


def get_tournament_winner(bracket: BracketStructure) -> Optional[Participant]:
    if not is_tournament_complete(bracket):
        return None
    return get_final_match(bracket).winner


def _walkover_flags(bracket: BracketStructure) -> Dict[int, bool]:
    """
    Map match id -> True when the match will be decided by a bye.

    A round-1 match is a walkover when a bye sits in either slot. A later
    match is a walkover when a feeder can only produce a bye, which happens
    when both of that feeder's sides are byes.
    """
    yields_bye = {}
    walkover = {}
    for match in bracket.matches:
        if match.round == 1:
            participant1, participant2 = match.participants
            yields_bye[match.id] = participant1.is_bye and participant2.is_bye
            walkover[match.id] = participant1.is_bye or participant2.is_bye
        else:
            feeder1, feeder2 = match.previous_match_ids
            yields_bye[match.id] = yields_bye[feeder1] and yields_bye[feeder2]
            walkover[match.id] = yields_bye[feeder1] or yields_bye[feeder2]
    return walkover


def assign_bout_numbers(bracket: BracketStructure, start: int = 1) -> Dict[int, int]:
    """
    Number the contested matches in play order (round, then position).

    Walkovers get no bout number. Returns match id -> bout number.
    """
    walkover = _walkover_flags(bracket)
    bout_numbers = {}
    bout = start
    for match in bracket.matches:
        if walkover[match.id]:
            match.bout_number = None
            continue
        match.bout_number = bout
        bout_numbers[match.id] = bout
        bout += 1
    return bout_numbers


def _participant_display(participant: Optional[Participant]) -> Optional[Dict]:
    if participant is None:
        return None
    data = participant.to_dict()
    data['is_bye'] = participant.is_bye
    return data


def get_match_display(match: Match, is_playable: bool = False) -> Dict:
    return {
        'id': match.id,
        'round': match.round,
        'position': match.position,
        'bout_number': match.bout_number,
        'participant1': _participant_display(match.participant1),
        'participant2': _participant_display(match.participant2),
        'winner': _participant_display(match.winner),
        'score1': match.score1,
        'score2': match.score2,
        'next_match_id': match.next_match_id,
        'previous_match_ids': list(match.previous_match_ids) if match.previous_match_ids else None,
        'is_bye': is_bye_match(match),
        'is_playable': is_playable,
    }


def get_bracket_display(bracket: BracketStructure) -> Dict:
    """
    Get bracket data formatted for display.

    Returns dict with:
    - 'rounds': round name -> list of match dicts
    - 'bracket_size', 'total_rounds', 'total_participants', 'byes'
    - 'complete' and 'champion'
    """
    active_ids = {m.id for m in get_active_matches(bracket)}
    rounds = {}
    for round_number in range(1, bracket.rounds + 1):
        round_name = get_round_name(round_number, bracket.rounds)
        rounds[round_name] = [
            get_match_display(match, is_playable=match.id in active_ids)
            for match in get_matches_by_round(bracket, round_number)
        ]

    champion = get_tournament_winner(bracket)
    return {
        'bracket_type': bracket.bracket_type,
        'bracket_size': bracket.bracket_size,
        'total_rounds': bracket.rounds,
        'total_participants': bracket.total_participants,
        'byes': bracket.bracket_size - bracket.total_participants,
        'rounds': rounds,
        'complete': champion is not None,
        'champion': _participant_display(champion),
    }
