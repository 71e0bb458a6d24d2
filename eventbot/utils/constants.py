CATEGORIES = (
    "Dance",
    "Music",
    "Concert",
    "Entertainment",
    "Politics",
    "Theatre",
    "Sport",
    "Education",
    "Eat & Drink",
    "Art",
    "Cinema",
    "Festival",
    "Exhibition",
    "Literature",
    "Workshop",
    "Lecture",
    "Market",
    "Other",
)

TITLE_MAX_LENGTH = 80
DESCRIPTION_MAX_LENGTH = 405
TEMPLATE_DESCRIPTION_MAX_LENGTH = 550
LOCATION_MIN_LENGTH = 3
LOCATION_MAX_LENGTH = 90
LINK_MAX_LENGTH = 100
MAX_LINKS = 2
TEMPLATE_NAME_MAX_LENGTH = 50
BAN_REASON_MAX_LENGTH = 500

ANONYMOUS_NAME = "Anonymous"
