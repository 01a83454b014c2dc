# languages.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from wikigraph.errors import LanguageUnsupported

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Language:
    """A Wikipedia language edition.

    code: short language code used by callers ("en", "nb", "lzh")
    name: English display name
    wiki_code: subdomain of the edition ("en", "no", "zh-classical")
    """
    code: str
    name: str
    wiki_code: str

    @property
    def host(self) -> str:
        return f"{self.wiki_code}.wikipedia.org"

    @classmethod
    def from_code(cls, code: str) -> "Language":
        """Look up a language by code, raising LanguageUnsupported if absent."""
        try:
            return LANGUAGES[code.strip().lower()]
        except KeyError:
            raise LanguageUnsupported(code) from None

    def __str__(self) -> str:
        return self.code


# (code, name, wiki subdomain). Rows without a subdomain have no Wikipedia
# edition and are dropped by _build_table.
_LANGUAGE_ROWS: List[Tuple[str, str, Optional[str]]] = [
    ("af", "Afrikaans", "af"),
    ("als", "Alemannic", "als"),
    ("am", "Amharic", "am"),
    ("ar", "Arabic", "ar"),
    ("arz", "Egyptian Arabic", "arz"),
    ("ast", "Asturian", "ast"),
    ("az", "Azerbaijani", "az"),
    ("be", "Belarusian", "be"),
    ("be-tarask", "Belarusian (Taraškievica)", "be-tarask"),
    ("bg", "Bulgarian", "bg"),
    ("bn", "Bangla", "bn"),
    ("br", "Breton", "br"),
    ("bs", "Bosnian", "bs"),
    ("ca", "Catalan", "ca"),
    ("ceb", "Cebuano", "ceb"),
    ("cs", "Czech", "cs"),
    ("cy", "Welsh", "cy"),
    ("da", "Danish", "da"),
    ("de", "German", "de"),
    ("el", "Greek", "el"),
    ("en", "English", "en"),
    ("eo", "Esperanto", "eo"),
    ("es", "Spanish", "es"),
    ("et", "Estonian", "et"),
    ("eu", "Basque", "eu"),
    ("fa", "Persian", "fa"),
    ("fi", "Finnish", "fi"),
    ("fo", "Faroese", "fo"),
    ("fr", "French", "fr"),
    ("fy", "Western Frisian", "fy"),
    ("ga", "Irish", "ga"),
    ("gl", "Galician", "gl"),
    ("gsw", "Swiss German", "als"),
    ("he", "Hebrew", "he"),
    ("hi", "Hindi", "hi"),
    ("hr", "Croatian", "hr"),
    ("hu", "Hungarian", "hu"),
    ("hy", "Armenian", "hy"),
    ("id", "Indonesian", "id"),
    ("is", "Icelandic", "is"),
    ("it", "Italian", "it"),
    ("ja", "Japanese", "ja"),
    ("ka", "Georgian", "ka"),
    ("kk", "Kazakh", "kk"),
    ("ko", "Korean", "ko"),
    ("la", "Latin", "la"),
    ("lb", "Luxembourgish", "lb"),
    ("lt", "Lithuanian", "lt"),
    ("lv", "Latvian", "lv"),
    ("lzh", "Literary Chinese", "zh-classical"),
    ("mk", "Macedonian", "mk"),
    ("ms", "Malay", "ms"),
    ("nan", "Min Nan Chinese", "zh-min-nan"),
    ("nb", "Norwegian Bokmål", "no"),
    ("nl", "Dutch", "nl"),
    ("nn", "Norwegian Nynorsk", "nn"),
    ("no", "Norwegian", "no"),
    ("nv", "Navajo", "nv"),
    ("pl", "Polish", "pl"),
    ("pt", "Portuguese", "pt"),
    ("ro", "Romanian", "ro"),
    ("ru", "Russian", "ru"),
    ("sgs", "Samogitian", "bat-smg"),
    ("simple", "Simple English", "simple"),
    ("sk", "Slovak", "sk"),
    ("sl", "Slovenian", "sl"),
    ("sq", "Albanian", "sq"),
    ("sr", "Serbian", "sr"),
    ("sv", "Swedish", "sv"),
    ("sw", "Swahili", "sw"),
    ("ta", "Tamil", "ta"),
    ("th", "Thai", "th"),
    ("tlh", "Klingon", None),
    ("to", "Tongan", "to"),
    ("tr", "Turkish", "tr"),
    ("uk", "Ukrainian", "uk"),
    ("ur", "Urdu", "ur"),
    ("uz", "Uzbek", "uz"),
    ("vi", "Vietnamese", "vi"),
    ("vro", "Võro", "fiu-vro"),
    ("yue", "Cantonese", "zh-yue"),
    ("zh", "Chinese", "zh"),
]


def _build_table(rows: Iterable[Tuple[str, str, Optional[str]]]) -> Dict[str, Language]:
    table: Dict[str, Language] = {}
    for code, name, wiki_code in rows:
        if not wiki_code:
            logger.debug("Skipping language '%s': no Wikipedia edition", code)
            continue
        table[code] = Language(code=code, name=name, wiki_code=wiki_code)
    return table


LANGUAGES: Dict[str, Language] = _build_table(_LANGUAGE_ROWS)

DEFAULT_LANGUAGE: Language = LANGUAGES["en"]
