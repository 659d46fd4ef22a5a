"""
DOM selectors for the catalog site.

This is the site's markup contract and changes whenever the site does;
keep every selector here so the extraction code never embeds one.
"""
import re

# Navigation
DETAIL_PATH = "/book/show/"
OVERLAY_CLOSE = '[class*="Overlay__close"], button[aria-label="Close"]'
RESULT_LINK = 'a[href*="/book/show/"]:not([href*="/reviews"])'
HYDRATION_MARKER = 'h1[data-testid="bookTitle"], .BookPageTitleSection__title'

# Description expansion
DESCRIPTION_MORE_BUTTON = ".BookPageMetadataSection__description .Button--text"

# Details panel
DETAILS_VISIBLE = (
    'dt:has-text("Original title") + dd, '
    'dt:has-text("Published") + dd, '
    '[data-testid="bookDetails"]'
)
DETAILS_BUTTON_LABELS = (
    re.compile(r"book details & editions", re.IGNORECASE),
    re.compile(r"book details and editions", re.IGNORECASE),
    re.compile(r"book details", re.IGNORECASE),
    re.compile(r"details", re.IGNORECASE),
    re.compile(r"editions", re.IGNORECASE),
)

# Fields
TITLE = 'h1[data-testid="bookTitle"]'
TITLE_LEGACY = ".BookPageTitleSection__title h1"
SUBTITLE = '[data-testid="bookSubtitle"]'
SUBTITLE_LEGACY = ".BookPageTitleSection__subtitle"
SUBTITLE_TITLE_SECTION = ".BookPageTitleSection__title h3"
SUBTITLE_TEST_ID_SECTION = '[data-testid="bookPageTitleSection"] h3'
AUTHOR = ".ContributorLink__name"
AUTHOR_TEST_ID = '[data-testid="name"]'
COVER_META = 'meta[property="og:image"]'
COVER_IMAGE = ".BookCover__image img"
RATING = ".RatingStatistics__rating"
RATINGS_COUNT = '[data-testid="ratingsCount"]'
DESCRIPTION = '[data-testid="description"] [data-testid="contentContainer"]'
DESCRIPTION_LEGACY = ".BookPageMetadataSection__description"
GENRES = '[data-testid="genresList"] .Button__labelItem'
GENRES_LINKS = '[data-testid="genresList"] a'
PAGES_FORMAT = '[data-testid="pagesFormat"]'
FORMAT_DETAIL = 'dt:has-text("Format") + dd'
LANGUAGE_DETAIL = 'dt:has-text("Language") + dd'
SERIES_DETAIL = 'dt:has-text("Series") + dd a'
ORIGINAL_TITLE_CONTENT = 'dt:has-text("Original title") + dd [data-testid="contentContainer"]'
ORIGINAL_TITLE_DETAIL = 'dt:has-text("Original title") + dd'
PUBLISHED_DETAIL = 'dt:has-text("Published") + dd'
PUBLICATION_INFO = '[data-testid="publicationInfo"]'
BODY = "body"
