"""Built-in English rule catalog.

Replacement strategies are plain named functions collected in
``REPLACEMENT_STRATEGIES`` so rules described as data (``rule_from_definition``)
can refer to them by name instead of carrying code.
"""
from __future__ import annotations

import re
from typing import Any, Callable, Dict, List, Mapping, Tuple

from app.models.suggestion import ImpactTags
from app.services.quality import STANDARD_FACTORS
from app.services.rules import Groups, QualityFactor, Rule, RuleCondition, RuleContext, RuleDefinitionError, RuleRegistry

I, M = re.IGNORECASE, re.MULTILINE

BASE_VERBS = (
    "run walk jump swim fly sleep eat drink play work study read write talk sing dance cook drive sit "
    "stand move come go look watch listen think feel get make take give see know say tell ask help learn "
    "teach buy sell build clean wash fix paint open close start stop continue begin end finish try want "
    "need love like hate hope believe understand remember forget choose decide plan prepare organize "
    "manage control lead follow support encourage celebrate enjoy suffer struggle fight win lose compete "
    "practice train exercise relax rest wake dream"
).split()

GERUNDS = (
    "running walking jumping swimming flying sleeping eating drinking playing working studying reading "
    "writing talking singing dancing cooking driving sitting standing lying moving coming going looking "
    "watching listening thinking feeling doing getting making taking giving seeing saying telling asking "
    "helping learning teaching buying selling building cleaning washing fixing painting opening closing "
    "starting stopping trying waiting"
).split()

ARTICLE_VERBS = "want need have see buy get take find like love hate use own lose fix make build write read watch".split()
COUNTABLE_NOUNS = (
    "bottle book car house phone computer chair table pen pencil bag box cup glass plate bowl knife fork "
    "spoon shirt dress hat coat jacket key door window lamp mirror picture photo flower tree dog cat bird "
    "horse apple banana orange lemon sandwich pizza burger salad song movie game job laptop tablet ticket umbrella"
).split()

IRREGULAR_PLURALS = "people children men women police mice feet teeth geese".split()

AUXILIARY_BLOCKERS = {
    "do", "does", "did", "will", "would", "can", "could", "should", "shall", "may", "might", "must",
    "let", "lets", "make", "makes", "made", "help", "helps", "helped", "watch", "watched", "see", "saw",
    "hear", "heard", "why", "to", "don't", "doesn't", "didn't",
}
SUBJUNCTIVE_MARKERS = {"if", "wish", "wished", "though", "as"}
COPULAS = {"is", "are", "was", "were", "isn't", "aren't", "wasn't", "weren't"}
PHRASE_END_WORDS = {"and", "but", "at", "in", "on", "today", "now", "for", "with", "to", "when", "because", "enough"}
REPEATABLE_WORDS = {"had", "that", "bye", "ha", "no"}


def _alt(words) -> str:
    return "|".join(words)


def _after(*subjects: str) -> str:
    # one fixed-width lookbehind per subject, so the span covers only the verb
    return "(?:" + "|".join(rf"(?<=\b{s}\s)" for s in subjects) + ")"


SENTENCE_START = r"(?:^|(?<=[.!?]\s))"
_WORDS = re.compile(r"[A-Za-z'’]+")


# ----------------------------------------------------------------------------
# Case helpers
# ----------------------------------------------------------------------------
def match_case(original: str, replacement: str) -> str:
    if len(original) > 1 and original.isupper():
        return replacement.upper()
    if original[:1].isupper():
        return replacement[:1].upper() + replacement[1:]
    return replacement


def third_person(verb: str) -> str:
    low = verb.lower()
    irregular = {"go": "goes", "do": "does", "have": "has", "be": "is"}
    if low in irregular:
        out = irregular[low]
    elif re.search(r"(?:s|sh|ch|x|z|o)$", low):
        out = low + "es"
    elif re.search(r"[^aeiou]y$", low):
        out = low[:-1] + "ies"
    else:
        out = low + "s"
    return match_case(verb, out)


# ----------------------------------------------------------------------------
# Replacement strategies: (matched text, groups) -> str | list[str]
# ----------------------------------------------------------------------------
def replace_word(old: str, new: str) -> Callable[[str, Groups], str]:
    pattern = re.compile(rf"\b{re.escape(old)}\b", I)

    def strategy(match: str, groups: Groups) -> str:
        return pattern.sub(lambda m: match_case(m.group(0), new), match, count=1)

    strategy.__name__ = f"{new}_for_{old}"
    return strategy


def add_auxiliary_to_gerund(match: str, groups: Groups) -> List[str]:
    article, noun, verb = groups
    plural = article.lower() == "the" and noun.lower().endswith("s") and not noun.lower().endswith("ss")
    present, past = ("are", "were") if plural else ("is", "was")
    return [f"{article} {noun} {present} {verb}", f"{article} {noun} {past} {verb}"]


def add_auxiliary_to_pronoun_gerund(match: str, groups: Groups) -> List[str]:
    pronoun, verb = groups
    low = pronoun.lower()
    if low == "i":
        present, past = "am", "was"
    elif low in ("you", "we", "they"):
        present, past = "are", "were"
    else:
        present, past = "is", "was"
    return [f"{pronoun} {present} {verb}", f"{pronoun} {past} {verb}"]


def third_person_singular(match: str, groups: Groups) -> str:
    subject, verb = groups
    return f"{subject} {third_person(verb)}"


def doesnt_for_dont(match: str, groups: Groups) -> str:
    apostrophe = match[3]
    return match_case(match, f"doesn{apostrophe}t")


ADVERBS = {
    "good": "well", "bad": "badly", "quick": "quickly", "slow": "slowly", "loud": "loudly",
    "quiet": "quietly", "careful": "carefully", "careless": "carelessly", "nice": "nicely", "easy": "easily",
}


def adverb_for_adjective(match: str, groups: Groups) -> str:
    verb, adjective = groups
    adverb = ADVERBS.get(adjective.lower(), adjective.lower() + "ly")
    return f"{verb} {match_case(adjective, adverb)}"


def insert_article(match: str, groups: Groups) -> List[str]:
    subject, verb, noun = groups
    article = "an" if noun[:1].lower() in "aeiou" else "a"
    return [f"{subject} {verb} {article} {noun}", f"{subject} {verb} the {noun}"]


def subject_pronoun(match: str, groups: Groups) -> str:
    return re.sub(r"^me\b", "I", match, count=1, flags=I)


def have_for_of(match: str, groups: Groups) -> str:
    return f"{groups[0]} have"


POSITIVE_FORMS = {
    "don't": "do", "doesn't": "does", "didn't": "did", "won't": "will", "wouldn't": "would",
    "shouldn't": "should", "couldn't": "could", "can't": "can", "isn't": "is", "aren't": "are",
    "wasn't": "was", "weren't": "were",
}
ANY_FORMS = {"no": "any", "nobody": "anybody", "nothing": "anything", "nowhere": "anywhere", "none": "any"}


def remove_double_negative(match: str, groups: Groups) -> List[str]:
    negative, verb, word = groups
    positive = POSITIVE_FORMS[negative.lower().replace("’", "'")]
    return [
        f"{negative} {verb} {match_case(word, ANY_FORMS[word.lower()])}",
        f"{match_case(negative, positive)} {verb} {word}",
    ]


def an_before_vowel(match: str, groups: Groups) -> str:
    article, word = groups
    return f"{match_case(article, 'an')} {word}"


def a_before_consonant(match: str, groups: Groups) -> str:
    article, word = groups
    return f"{match_case(article, 'a')} {word}"


def first_group(match: str, groups: Groups) -> str:
    return groups[0]


def join_groups(match: str, groups: Groups) -> str:
    return " ".join(g for g in groups if g)


def capital_i(match: str, groups: Groups) -> str:
    return "I"


def youre_for_your(match: str, groups: Groups) -> str:
    your, word = match.split()[0], groups[0]
    return f"{match_case(your, 'you')}'re {word}"


def their_for_there(match: str, groups: Groups) -> str:
    return f"{match_case(match, 'their')} {groups[0]}"


def theyre_for_their(match: str, groups: Groups) -> str:
    return f"{match_case(match, 'they')}'re {groups[0]}"


REPLACEMENT_STRATEGIES: Dict[str, Callable[[str, Groups], Any]] = {
    "add_auxiliary_to_gerund": add_auxiliary_to_gerund,
    "add_auxiliary_to_pronoun_gerund": add_auxiliary_to_pronoun_gerund,
    "third_person_singular": third_person_singular,
    "doesnt_for_dont": doesnt_for_dont,
    "were_for_was": replace_word("was", "were"),
    "was_for_were": replace_word("were", "was"),
    "have_for_has": replace_word("has", "have"),
    "has_for_have": replace_word("have", "has"),
    "go_for_goes": replace_word("goes", "go"),
    "goes_for_go": replace_word("go", "goes"),
    "adverb_for_adjective": adverb_for_adjective,
    "insert_article": insert_article,
    "subject_pronoun": subject_pronoun,
    "have_for_of": have_for_of,
    "remove_double_negative": remove_double_negative,
    "an_before_vowel": an_before_vowel,
    "a_before_consonant": a_before_consonant,
    "first_group": first_group,
    "join_groups": join_groups,
    "capital_i": capital_i,
    "youre_for_your": youre_for_your,
    "their_for_there": their_for_there,
    "theyre_for_their": theyre_for_their,
}


# ----------------------------------------------------------------------------
# Conditions
# ----------------------------------------------------------------------------
def _clause_words(ctx: RuleContext) -> List[str]:
    clause = re.split(r"[.!?;:]", ctx.preceding_text)[-1]
    return [w.lower().replace("’", "'") for w in _WORDS.findall(clause)]


def _english(text: str, m, ctx: RuleContext) -> bool:
    return ctx.language.lower().startswith("en")


def _not_after_auxiliary(text: str, m, ctx: RuleContext) -> bool:
    # "Did he go", "let it go", "saw the dog run"
    return not AUXILIARY_BLOCKERS.intersection(_clause_words(ctx)[-1:])


def _subject_not_after_auxiliary(text: str, m, ctx: RuleContext) -> bool:
    # the span starts at the verb, so the blocker sits before the subject
    return not AUXILIARY_BLOCKERS.intersection(_clause_words(ctx)[-2:-1])


def _not_subjunctive(text: str, m, ctx: RuleContext) -> bool:
    return not SUBJUNCTIVE_MARKERS.intersection(_clause_words(ctx)[-1:])


def _not_after_copula(text: str, m, ctx: RuleContext) -> bool:
    return not COPULAS.intersection(_clause_words(ctx)[-1:])


def _at_phrase_end(text: str, m, ctx: RuleContext) -> bool:
    rest = ctx.following_text.lstrip()
    if not rest or rest[0] in ".,!?;:":
        return True
    nxt = _WORDS.match(rest)
    return bool(nxt) and nxt.group(0).lower() in PHRASE_END_WORDS


def _not_acronym(text: str, m, ctx: RuleContext) -> bool:
    word = m.group(2)
    return not (len(word) > 1 and word.isupper())


def _not_repeatable(text: str, m, ctx: RuleContext) -> bool:
    return m.group(1).lower() not in REPEATABLE_WORDS


CONDITIONS: Dict[str, RuleCondition] = {
    "english_only": RuleCondition("language", _english),
    "not_after_auxiliary": RuleCondition("context", _not_after_auxiliary),
    "subject_not_after_auxiliary": RuleCondition("context", _subject_not_after_auxiliary),
    "not_subjunctive": RuleCondition("context", _not_subjunctive),
    "not_after_copula": RuleCondition("context", _not_after_copula),
    "at_phrase_end": RuleCondition("position", _at_phrase_end),
    "not_acronym": RuleCondition("context", _not_acronym),
    "not_repeatable": RuleCondition("context", _not_repeatable),
}

QUALITY_FACTORS: Dict[str, QualityFactor] = {f.name: f for f in STANDARD_FACTORS}


def _conditions(*names: str) -> Tuple[RuleCondition, ...]:
    return tuple(CONDITIONS[n] for n in ("english_only",) + names)


GRAMMAR_FIX = ImpactTags(correctness="fixes", clarity="improves")
INCOMPLETE_MSG = "This appears to be an incomplete sentence. Consider adding 'is', 'was', 'are', or 'were' before the verb."

BUILTIN_RULES: Tuple[Rule, ...] = (
    # INCOMPLETE SENTENCES
    Rule(
        id="incomplete-gerund-article",
        name="Incomplete Gerund with Article",
        description='Detects incomplete sentences with gerunds like "The cat running"',
        category="incomplete-sentence", severity="high", issue_type="grammar",
        pattern=re.compile(rf"{SENTENCE_START}(the|a|an)\s+(\w+)\s+({_alt(GERUNDS)})\b", I | M),
        message=INCOMPLETE_MSG, priority=95,
        replacement=add_auxiliary_to_gerund,
        quality_factors=STANDARD_FACTORS, conditions=_conditions(), impact=GRAMMAR_FIX,
        tense_sensitive=True,
    ),
    Rule(
        id="incomplete-gerund-pronoun",
        name="Incomplete Gerund with Pronoun",
        description='Detects incomplete sentences with pronouns and gerunds like "He running"',
        category="incomplete-sentence", severity="high", issue_type="grammar",
        pattern=re.compile(rf"{SENTENCE_START}(he|she|it|i|you|we|they)\s+({_alt(GERUNDS)})\b", I | M),
        message=INCOMPLETE_MSG, priority=95,
        replacement=add_auxiliary_to_pronoun_gerund,
        quality_factors=STANDARD_FACTORS, conditions=_conditions(), impact=GRAMMAR_FIX,
        tense_sensitive=True,
    ),
    # SUBJECT-VERB AGREEMENT
    Rule(
        id="subject-verb-was-were",
        name="Subject-Verb Agreement: was/were",
        description='Corrects "you/we/they was" to "were"',
        category="subject-verb-agreement", severity="high", issue_type="grammar",
        pattern=re.compile(r"\b(you|we|they)\s+was\b", I),
        message="Subject-verb disagreement. Use 'were' instead of 'was' with plural subjects.",
        priority=90,
        replacement=REPLACEMENT_STRATEGIES["were_for_was"],
        quality_factors=STANDARD_FACTORS, conditions=_conditions(), impact=GRAMMAR_FIX,
        tense_sensitive=True,
    ),
    Rule(
        id="subject-verb-were-was",
        name="Subject-Verb Agreement: were/was",
        description='Corrects "I/he/she/it were" to "was" outside the subjunctive',
        category="subject-verb-agreement", severity="high", issue_type="grammar",
        pattern=re.compile(r"\b(I|he|she|it)\s+were\b", I),
        message="Subject-verb disagreement. Use 'was' instead of 'were' with singular subjects.",
        priority=90,
        replacement=REPLACEMENT_STRATEGIES["was_for_were"],
        quality_factors=STANDARD_FACTORS, conditions=_conditions("not_subjunctive"), impact=GRAMMAR_FIX,
        tense_sensitive=True,
    ),
    Rule(
        id="subject-verb-third-person-singular",
        name="Third Person Singular Verb Agreement",
        description='Adds "s" to verbs with he/she/it subjects',
        category="subject-verb-agreement", severity="high", issue_type="grammar",
        pattern=re.compile(rf"\b(he|she|it)\s+({_alt(BASE_VERBS)})\b(?!['’])", I),
        message="Subject-verb disagreement. Use the third person singular form of the verb with 'he', 'she', or 'it'.",
        priority=85,
        replacement=third_person_singular,
        quality_factors=STANDARD_FACTORS, conditions=_conditions("not_after_auxiliary"), impact=GRAMMAR_FIX,
        tense_sensitive=True,
    ),
    Rule(
        id="subject-verb-singular-noun",
        name="Singular Noun Verb Agreement",
        description='Adds "s" to verbs with singular noun subjects',
        category="subject-verb-agreement", severity="high", issue_type="grammar",
        pattern=re.compile(
            rf"\b(the\s+(?!(?:{_alt(IRREGULAR_PLURALS)})\b)\w*[^\Ws])\s+({_alt(BASE_VERBS)})\b(?!['’])", I
        ),
        message="Subject-verb disagreement. Singular subjects need 's' at the end of the verb.",
        priority=85,
        replacement=third_person_singular,
        quality_factors=STANDARD_FACTORS, conditions=_conditions("not_after_auxiliary"), impact=GRAMMAR_FIX,
        tense_sensitive=True,
    ),
    # CONTRACTIONS AND VERB FORMS
    Rule(
        id="contraction-dont-doesnt",
        name="Don't vs Doesn't",
        description="Corrects \"he/she/it don't\" to \"doesn't\"",
        category="contractions", severity="high", issue_type="grammar",
        pattern=re.compile(rf"{_after('he', 'she', 'it')}don['’]t\b", I),
        message="Incorrect contraction. Use 'doesn't' instead of 'don't' with singular subjects.",
        priority=80,
        replacement=doesnt_for_dont,
        quality_factors=STANDARD_FACTORS, conditions=_conditions(), impact=GRAMMAR_FIX,
        tense_sensitive=True,
    ),
    Rule(
        id="verb-form-has-have-plural",
        name="Has/Have with Plural Subjects",
        description='Corrects "I/you/we/they has" to "have"',
        category="verb-form", severity="high", issue_type="grammar",
        pattern=re.compile(rf"{_after('I', 'you', 'we', 'they')}has\b", I),
        message="Subject-verb disagreement. Use 'have' instead of 'has' with plural subjects.",
        priority=80,
        replacement=REPLACEMENT_STRATEGIES["have_for_has"],
        quality_factors=STANDARD_FACTORS, conditions=_conditions(), impact=GRAMMAR_FIX,
        tense_sensitive=True,
    ),
    Rule(
        id="verb-form-have-has-singular",
        name="Have/Has with Singular Subjects",
        description='Corrects "he/she/it have" to "has"',
        category="verb-form", severity="high", issue_type="grammar",
        pattern=re.compile(rf"{_after('he', 'she', 'it')}have\b", I),
        message="Subject-verb disagreement. Use 'has' instead of 'have' with singular subjects.",
        priority=80,
        replacement=REPLACEMENT_STRATEGIES["has_for_have"],
        quality_factors=STANDARD_FACTORS, conditions=_conditions("subject_not_after_auxiliary"),
        impact=GRAMMAR_FIX, tense_sensitive=True,
    ),
    Rule(
        id="verb-form-go-goes-plural",
        name="Go/Goes with Plural Subjects",
        description='Corrects "I/you/we/they goes" to "go"',
        category="verb-form", severity="high", issue_type="grammar",
        pattern=re.compile(rf"{_after('I', 'you', 'we', 'they')}goes\b", I),
        message="Subject-verb disagreement. Use 'go' instead of 'goes' with plural subjects.",
        priority=80,
        replacement=REPLACEMENT_STRATEGIES["go_for_goes"],
        quality_factors=STANDARD_FACTORS, conditions=_conditions(), impact=GRAMMAR_FIX,
        tense_sensitive=True,
    ),
    Rule(
        id="verb-form-goes-go-singular",
        name="Goes/Go with Singular Subjects",
        description='Corrects "he/she/it go" to "goes"',
        category="verb-form", severity="high", issue_type="grammar",
        pattern=re.compile(rf"{_after('he', 'she', 'it')}go\b(?!['’])", I),
        message="Subject-verb disagreement. Use 'goes' instead of 'go' with singular subjects.",
        priority=80,
        replacement=REPLACEMENT_STRATEGIES["goes_for_go"],
        quality_factors=STANDARD_FACTORS, conditions=_conditions("subject_not_after_auxiliary"),
        impact=GRAMMAR_FIX, tense_sensitive=True,
    ),
    Rule(
        id="modal-verb-of-have",
        name="Modal Verb + Of -> Have",
        description='Corrects "should of" to "should have"',
        category="verb-form", severity="high", issue_type="grammar",
        pattern=re.compile(r"\b(should|would|could|might|must)\s+of\b", I),
        message="Use 'have' instead of 'of' after modal verbs.",
        priority=75,
        replacement=have_for_of,
        quality_factors=STANDARD_FACTORS, conditions=_conditions(), impact=GRAMMAR_FIX,
    ),
    # PRONOUNS
    Rule(
        id="pronoun-me-subject",
        name="Me as Subject Pronoun",
        description='Corrects "Me want" to "I want"',
        category="pronoun-agreement", severity="high", issue_type="grammar",
        pattern=re.compile(
            rf"{SENTENCE_START}me\s+(want|need|have|like|love|hate|see|know|think|go|went|am|was|can|will)\b", I | M
        ),
        message="Use 'I' instead of 'Me' as the subject of a sentence.",
        priority=85,
        replacement=subject_pronoun,
        quality_factors=STANDARD_FACTORS, conditions=_conditions(), impact=GRAMMAR_FIX,
    ),
    # WORD CHOICE
    Rule(
        id="word-choice-your-youre",
        name="Your vs You're",
        description='Corrects "your going" to "you\'re going"',
        category="word-choice", severity="high", issue_type="grammar",
        pattern=re.compile(r"\byour\s+(going|coming|doing|being|welcome|not)\b", I),
        message="Use \"you're\" (you are) here, not the possessive \"your\".",
        priority=75,
        replacement=youre_for_your,
        quality_factors=STANDARD_FACTORS, conditions=_conditions(), impact=GRAMMAR_FIX,
    ),
    Rule(
        id="word-choice-there-their",
        name="There vs Their",
        description='Corrects "there house" to "their house"',
        category="word-choice", severity="high", issue_type="grammar",
        pattern=re.compile(
            r"\bthere\s+(own|house|car|home|room|job|family|children|parents|friends?|dog|cat|book|phone|"
            r"money|idea|plan|life|team|names?)\b",
            I,
        ),
        message="Use the possessive \"their\" before a noun.",
        priority=70,
        replacement=their_for_there,
        quality_factors=STANDARD_FACTORS, conditions=_conditions("not_after_copula"), impact=GRAMMAR_FIX,
    ),
    Rule(
        id="word-choice-their-theyre",
        name="Their vs They're",
        description='Corrects "their going" to "they\'re going"',
        category="word-choice", severity="high", issue_type="grammar",
        pattern=re.compile(r"\btheir\s+(going|coming|doing|being|not|leaving|trying)\b", I),
        message="Use \"they're\" (they are) here, not the possessive \"their\".",
        priority=70,
        replacement=theyre_for_their,
        quality_factors=STANDARD_FACTORS, conditions=_conditions(), impact=GRAMMAR_FIX,
    ),
    # ADJECTIVE / ADVERB
    Rule(
        id="adjective-adverb-confusion",
        name="Adjective/Adverb Confusion",
        description='Corrects "runs good" to "runs well"',
        category="adjective-adverb", severity="medium", issue_type="grammar",
        pattern=re.compile(
            r"\b(runs?|walks?|works?|plays?|moves?|drives?|talks?|sings?|dances?|writes?)\s+"
            rf"({_alt(ADVERBS)})\b",
            I,
        ),
        message="Use an adverb to describe how an action is performed. Most adverbs end in '-ly'.",
        priority=70,
        replacement=adverb_for_adjective,
        quality_factors=STANDARD_FACTORS, conditions=_conditions("at_phrase_end"),
        impact=ImpactTags(correctness="fixes", clarity="improves", formality="improves"),
    ),
    # ARTICLES
    Rule(
        id="article-a-before-vowel",
        name="A Before a Vowel Sound",
        description='Corrects "a apple" to "an apple"',
        category="article-usage", severity="medium", issue_type="grammar",
        pattern=re.compile(
            r"\b(a)\s+(?!(?:uni|use|usu|eu|one|once|ur)\w*\b)([aeiou]\w*|hour\w*|honest\w*|hono(?:u)?r\w*|heir\w*)\b", I
        ),
        message="Use 'an' before words that start with a vowel sound.",
        priority=70,
        replacement=an_before_vowel,
        base_score=88, conditions=_conditions(), impact=GRAMMAR_FIX,
    ),
    Rule(
        id="article-an-before-consonant",
        name="An Before a Consonant Sound",
        description='Corrects "an car" to "a car"',
        category="article-usage", severity="medium", issue_type="grammar",
        pattern=re.compile(r"\b(an)\s+(?!(?:hour|honest|hono|heir)\w*\b)([b-df-hj-np-tv-z]\w*)\b", I),
        message="Use 'a' before words that start with a consonant sound.",
        priority=70,
        replacement=a_before_consonant,
        base_score=88, conditions=_conditions("not_acronym"), impact=GRAMMAR_FIX,
    ),
    Rule(
        id="missing-article-singular-noun",
        name="Missing Article Before Singular Noun",
        description='Detects missing articles like "I want bottle" -> "I want a bottle"',
        category="article-usage", severity="medium", issue_type="grammar",
        pattern=re.compile(
            rf"\b(I|you|we|they)\s+({_alt(ARTICLE_VERBS)})\s+({_alt(COUNTABLE_NOUNS)})\b(?!\s+[a-z]+s\b)", I
        ),
        message="Singular countable nouns usually need an article ('a', 'an', or 'the').",
        priority=60,
        replacement=insert_article,
        quality_factors=STANDARD_FACTORS, conditions=_conditions(), impact=GRAMMAR_FIX,
    ),
    # DOUBLE NEGATIVES
    Rule(
        id="double-negative",
        name="Double Negative",
        description="Corrects double negatives like \"don't have no\"",
        category="double-negative", severity="medium", issue_type="grammar",
        pattern=re.compile(
            r"\b((?:do|does|did|wo|would|should|could|ca|is|are|was|were)n['’]t)\s+(\w+)\s+"
            r"(no|nobody|nothing|nowhere|none)\b",
            I,
        ),
        message="Avoid double negatives. Use either the negative verb or the negative word, not both.",
        priority=65,
        replacement=remove_double_negative,
        quality_factors=STANDARD_FACTORS, conditions=_conditions(),
        impact=ImpactTags(correctness="fixes", clarity="improves", formality="improves"),
    ),
    # STRUCTURE, CAPITALIZATION, PUNCTUATION
    Rule(
        id="repeated-word",
        name="Repeated Word",
        description='Removes accidentally repeated words like "the the"',
        category="sentence-structure", severity="medium", issue_type="grammar",
        pattern=re.compile(r"\b(\w+)\s+\1\b", I),
        message="This word is repeated.",
        priority=60,
        replacement=first_group,
        base_score=90, conditions=_conditions("not_repeatable"),
        impact=ImpactTags(correctness="fixes", readability="improves"),
    ),
    Rule(
        id="capitalization-pronoun-i",
        name="Lowercase Pronoun I",
        description='Capitalizes the pronoun "i"',
        category="capitalization", severity="medium", issue_type="grammar",
        pattern=re.compile(r"(?<![\w.'’-])i(?=\s|['’][a-z]|[,!?;:]|\.(?:\s|$)|$)"),
        message="The pronoun 'I' is always capitalized.",
        priority=65,
        replacement=capital_i,
        base_score=90, conditions=_conditions(),
        impact=ImpactTags(correctness="fixes", formality="improves"),
    ),
    Rule(
        id="punctuation-space-before",
        name="Space Before Punctuation",
        description="Removes whitespace between a word and the punctuation that follows it",
        category="punctuation", severity="low", issue_type="style",
        pattern=re.compile(r"(?<=\w)[ \t]+([,;:!?]|\.(?![.\d]))"),
        message="Remove the space before this punctuation mark.",
        priority=60,
        replacement=first_group,
        base_score=85, conditions=_conditions(),
        impact=ImpactTags(correctness="improves", readability="improves"),
    ),
)


def default_registry() -> RuleRegistry:
    return RuleRegistry(BUILTIN_RULES)


_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL, "x": re.VERBOSE}


def rule_from_definition(data: Mapping[str, Any]) -> Rule:
    """Build a Rule from plain data (e.g. parsed JSON).

    Code is never part of a definition: ``replacement`` names an entry in
    ``REPLACEMENT_STRATEGIES``, ``conditions`` name entries in ``CONDITIONS``
    and ``quality_factors`` is ``"standard"``, ``"none"`` or a list of factor names.
    """
    data = dict(data)
    rule_id = data.get("id", "<unnamed>")
    try:
        replacement = REPLACEMENT_STRATEGIES[data.pop("replacement")]
    except KeyError as e:
        raise RuleDefinitionError(f"{rule_id}: unknown or missing replacement strategy {e}") from None

    flags = 0
    for f in data.pop("flags", ""):
        if f not in _FLAGS:
            raise RuleDefinitionError(f"{rule_id}: unknown pattern flag {f!r}")
        flags |= _FLAGS[f]
    try:
        pattern = re.compile(data.pop("pattern"), flags)
    except KeyError:
        raise RuleDefinitionError(f"{rule_id}: missing pattern") from None
    except re.error as e:
        raise RuleDefinitionError(f"{rule_id}: invalid pattern: {e}") from e

    factors = data.pop("quality_factors", "standard")
    try:
        if factors == "standard":
            factors = STANDARD_FACTORS
        elif factors == "none":
            factors = ()
        else:
            factors = tuple(QUALITY_FACTORS[name] for name in factors)
        conditions = _conditions(*data.pop("conditions", ()))
    except KeyError as e:
        raise RuleDefinitionError(f"{rule_id}: unknown factor or condition {e}") from None

    impact = ImpactTags(**data.pop("impact", {"correctness": "fixes"}))
    try:
        return Rule(
            pattern=pattern, replacement=replacement, quality_factors=factors,
            conditions=conditions, impact=impact, **data,
        )
    except TypeError as e:
        raise RuleDefinitionError(f"{rule_id}: {e}") from e
