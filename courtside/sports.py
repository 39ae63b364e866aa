"""Sport, court-condition and capacity lookup tables."""

BASKETBALL = 'basketball'
PICKLEBALL_SINGLES = 'pickleball_singles'
PICKLEBALL_DOUBLES = 'pickleball_doubles'
TENNIS_SINGLES = 'tennis_singles'
TENNIS_DOUBLES = 'tennis_doubles'

SPORT_TYPES = (
    BASKETBALL, PICKLEBALL_SINGLES, PICKLEBALL_DOUBLES,
    TENNIS_SINGLES, TENNIS_DOUBLES,
)
RACQUET_SPORTS = frozenset({
    PICKLEBALL_SINGLES, PICKLEBALL_DOUBLES, TENNIS_SINGLES, TENNIS_DOUBLES,
})

COURT_CONDITIONS = ('excellent', 'good', 'fair', 'poor', 'maintenance')

SPORT_MAX_PLAYERS = {
    BASKETBALL: 10,
    PICKLEBALL_SINGLES: 4,
    PICKLEBALL_DOUBLES: 4,
    TENNIS_SINGLES: 4,
    TENNIS_DOUBLES: 4,
}
HALF_COURT_MAX_PLAYERS = 5

# Explicit half-court basketball formats map to an exact head count.
GAME_FORMAT_PLAYER_COUNTS = {
    '1v1': 2,
    '2v2': 4,
    '3v3': 6,
    '4v4': 8,
    '5v5': 10,
}

SPORT_DISPLAY = {
    BASKETBALL: {'label': 'Basketball', 'icon': 'basketball', 'color': '#F57C00'},
    PICKLEBALL_SINGLES: {'label': 'Pickleball (Singles)', 'icon': 'pickleball', 'color': '#2E7D32'},
    PICKLEBALL_DOUBLES: {'label': 'Pickleball (Doubles)', 'icon': 'pickleball', 'color': '#2E7D32'},
    TENNIS_SINGLES: {'label': 'Tennis (Singles)', 'icon': 'tennis', 'color': '#C0CA33'},
    TENNIS_DOUBLES: {'label': 'Tennis (Doubles)', 'icon': 'tennis', 'color': '#C0CA33'},
}

CONDITION_DISPLAY = {
    'excellent': {'label': 'Excellent', 'color': '#2E7D32'},
    'good': {'label': 'Good', 'color': '#7CB342'},
    'fair': {'label': 'Fair', 'color': '#FBC02D'},
    'poor': {'label': 'Poor', 'color': '#E64A19'},
    'maintenance': {'label': 'Maintenance', 'color': '#757575'},
}


def normalize_sport_type(raw_value, fallback=BASKETBALL):
    text = str(raw_value or '').strip().lower().replace('-', '_').replace(' ', '_')
    # Accept the camelCase spellings older clients send.
    text = {
        'pickleballsingles': PICKLEBALL_SINGLES,
        'pickleballdoubles': PICKLEBALL_DOUBLES,
        'tennissingles': TENNIS_SINGLES,
        'tennisdoubles': TENNIS_DOUBLES,
    }.get(text, text)
    return text if text in SPORT_TYPES else fallback


def normalize_condition(raw_value, fallback='good'):
    text = str(raw_value or '').strip().lower()
    return text if text in COURT_CONDITIONS else fallback


def is_racquet_sport(sport_type):
    return sport_type in RACQUET_SPORTS


def supports_half_court(sport_type):
    return sport_type == BASKETBALL


def max_players_for_sport(sport_type):
    return SPORT_MAX_PLAYERS.get(sport_type, SPORT_MAX_PLAYERS[BASKETBALL])


def max_players_for_court(sport_type, is_half_court, game_format=None):
    """Player ceiling for a court.

    Half court only applies to basketball: it caps at 5 unless an explicit
    1v1..5v5 format is selected, in which case the format's head count
    (at most 10) is allowed.
    """
    if supports_half_court(sport_type) and is_half_court:
        if game_format in GAME_FORMAT_PLAYER_COUNTS:
            return max(GAME_FORMAT_PLAYER_COUNTS.values())
        return HALF_COURT_MAX_PLAYERS
    return max_players_for_sport(sport_type)


def clamp_player_count(count, ceiling):
    try:
        value = int(count)
    except (TypeError, ValueError):
        value = 0
    return max(0, min(value, int(ceiling)))
