BYE_NAME = 'BYE'
SINGLE_ELIMINATION = 'single-elimination'
DOUBLE_ELIMINATION = 'double-elimination'


class Participant:
    def __init__(self, id, name, seed=None, attributes=None):
        self.id = id
        self.name = name
        self.seed = seed
        self.attributes = attributes if attributes else {}

    @property
    def is_bye(self):
        return self.id < 0 and self.name == BYE_NAME

    def to_dict(self):
        data = {'id': self.id, 'name': self.name, 'seed': self.seed}
        if self.attributes:
            data['attributes'] = dict(self.attributes)
        return data

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=int(data['id']),
            name=data['name'],
            seed=data.get('seed'),
            attributes=data.get('attributes'),
        )

    def __eq__(self, other):
        if not isinstance(other, Participant):
            return NotImplemented
        return self.id == other.id and self.name == other.name

    def __hash__(self):
        return hash((self.id, self.name))

    def __repr__(self):
        return f"Participant(id={self.id}, name={self.name}, seed={self.seed})"


class Match:
    def __init__(self, id, round, position, participant1=None, participant2=None,
                 next_match_id=None, previous_match_ids=None):
        self.id = id
        self.round = round
        self.position = position
        self.participant1 = participant1
        self.participant2 = participant2
        self.winner = None
        self.next_match_id = next_match_id
        self.previous_match_ids = previous_match_ids  # (feeds slot 1, feeds slot 2)
        self.bout_number = None
        self.score1 = None
        self.score2 = None

    @property
    def participants(self):
        return self.participant1, self.participant2

    def to_dict(self):
        return {
            'id': self.id,
            'round': self.round,
            'position': self.position,
            'participant1': self.participant1.id if self.participant1 else None,
            'participant2': self.participant2.id if self.participant2 else None,
            'winner': self.winner.id if self.winner else None,
            'next_match_id': self.next_match_id,
            'previous_match_ids': list(self.previous_match_ids) if self.previous_match_ids else None,
            'bout_number': self.bout_number,
            'score1': self.score1,
            'score2': self.score2,
        }

    def __repr__(self):
        return (f"Match(id={self.id}, round={self.round}, position={self.position}, "
                f"participant1={self.participant1}, participant2={self.participant2}, winner={self.winner})")


class BracketStructure:
    def __init__(self, matches, rounds, total_participants, bracket_size,
                 bracket_type=SINGLE_ELIMINATION, participants=None):
        self.matches = matches
        self.rounds = rounds
        self.total_participants = total_participants
        self.bracket_size = bracket_size
        self.bracket_type = bracket_type
        self.participants = participants if participants else []  # slot order, byes included

    def to_dict(self):
        """Plain dict for YAML persistence; match slots reference participant ids."""
        return {
            'bracket_type': self.bracket_type,
            'rounds': self.rounds,
            'total_participants': self.total_participants,
            'bracket_size': self.bracket_size,
            'participants': [p.to_dict() for p in self.participants],
            'matches': [m.to_dict() for m in self.matches],
        }

    @classmethod
    def from_dict(cls, data):
        participants = [Participant.from_dict(p) for p in data.get('participants', [])]
        by_id = {p.id: p for p in participants}

        matches = []
        for item in data.get('matches', []):
            previous = item.get('previous_match_ids')
            match = Match(
                id=item['id'],
                round=item['round'],
                position=item['position'],
                participant1=by_id.get(item.get('participant1')),
                participant2=by_id.get(item.get('participant2')),
                next_match_id=item.get('next_match_id'),
                previous_match_ids=tuple(previous) if previous else None,
            )
            match.winner = by_id.get(item.get('winner'))
            match.bout_number = item.get('bout_number')
            match.score1 = item.get('score1')
            match.score2 = item.get('score2')
            matches.append(match)

        return cls(
            matches=matches,
            rounds=data['rounds'],
            total_participants=data['total_participants'],
            bracket_size=data['bracket_size'],
            bracket_type=data.get('bracket_type', SINGLE_ELIMINATION),
            participants=participants,
        )

    def __repr__(self):
        return (f"BracketStructure(bracket_type={self.bracket_type}, rounds={self.rounds}, "
                f"total_participants={self.total_participants}, matches={len(self.matches)})")
