"""
patterns.py
-----------
Per-field extraction rules for the LBO catalog.

Order within a field is priority: explicit dollar amounts are listed before
multiple-of-EBITDA readings of the same phrase, so "$900M" can never be read
as a multiple and "8.2x" can never be read as an amount.
"""

from dealforge.resolution.extractor import (
    rule, to_money, to_number, to_percent, percent_points, to_count,
    to_text, to_iso_date, to_schedule, constant,
)


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------

NUM = r"(?<![\d.,])(?P<num>\d[\d,]*(?:\.\d+)?)"

# Rejects a number that is really part of a percentage or a multiple ("8.2x")
GUARD = r"(?![\d.,]*\s*(?:%|[×x](?![a-z])))"

UNIT = r"(?P<unit>billion|bn|b|million|mm|m)(?![a-z])"

# Money must carry a "$" or a scale word
MONEY = (
    r"(?=\$|\d[\d,]*(?:\.\d+)?\s*(?:billion|bn|b|million|mm|m)(?![a-z]))"
    r"\$?\s*" + NUM + r"(?:\s*" + UNIT + r")?" + GUARD
)

# Unitless amount, only accepted straight after "=" or ":"
BARE_MONEY = NUM + r"(?:\s*" + UNIT + r")?" + GUARD + r"(?!\s*(?:years?|yrs?)\b)"

PCT = NUM + r"\s*(?:%|percent\b|pct\b)"

MULT = NUM + r"\s*[×x](?![a-z])"

MULT_OR_BARE = NUM + r"(?:\s*[×x](?![a-z]))?(?![\d.,]*\s*%)"

INT = r"(?<![\d.,])(?P<num>\d{1,2})(?![\d,]|\.\d)"

YEARS = r"\s*-?\s*(?:years?|yrs?)\b"

# Connector between a label and its value: "EBITDA of", "EV =", "price: "
CONN = r"[\s:=~]*(?:(?:of|at|is|was|totall?ing|approx(?:imately|\.)?|about|around|roughly)\s+)*"

# Any run of text inside one sentence
GAP = r"(?:(?!\.(?:\s|$))[^;])"


def _within(stop: str) -> str:
    """Lazy run of text inside one clause that never crosses a `stop` word."""
    return r"(?:(?!\.(?:\s|$)|;|\b(?:" + stop + r")\b).)*?"


SENIOR = r"\b(?:senior|first[- ]lien|term\s+loan)\b"
SENIOR_TAIL = r"(?:\s+(?:secured|debt|term|loan|notes|facility|tranche|leverage))*"
SUB = r"\b(?:sub(?:ordinated)?|mezz(?:anine)?|junior|second[- ]lien)\b"
SUB_TAIL = r"(?:\s+(?:debt|notes|loan|facility|tranche|leverage))*"

OTHER_TERMS = r"tax|growth|grow\w*|margins?|sweep|fees?|costs?|pik|amorti[sz]\w*|exit"
# A coupon is never a PIK, amortization or sweep percentage
NOT_COUPON = (r"(?!\s*(?:pik|payment[- ]in[- ]kind|(?:(?:annual|annually|mandatory|required)\s+)*amorti[sz]"
              r"|(?:of\s+)?(?:excess\s+|free\s+)?(?:cash(?:\s+flow)?\s+)?sweep))")

DEBT_CONTEXT = r"\b(?:debt|senior|sub(?:ordinated)?|mezz(?:anine)?|junior|leverage|levered|loans?|notes|lien|exit)\b"
MARGIN_CHANGE = r"\b(?:target|expand\w*|improv\w*|increas\w*|ris\w*|reach\w*|to)\b"


# ---------------------------------------------------------------------------
# 1. Target company
# ---------------------------------------------------------------------------

COMPANY_NAME = [
    rule(r"[\"“](?P<text>[^\"”\n]{2,60})[\"”]", to_text, flags=0),
    rule(r"(?i:\b(?:acquir(?:e|es|ing)|acquisition\s+of|buy(?:s|ing)?|buyout\s+of|lbo\s+of|take[- ]private\s+of))"
         r"\s+(?P<text>[A-Z][\w&\-]*(?:\s+[A-Z][\w&\-]*)*)", to_text, flags=0),
    rule(r"(?i:\b(?:company|target|firm)(?:\s+(?:called|named))?)"
         r"\s+(?P<text>[A-Z][\w&\-]*(?:\s+[A-Z][\w&\-]*)*)", to_text, flags=0),
]

TRANSACTION_DATE = [
    rule(r"\b(?:clos(?:e|es|ed|ing)|transaction\s+date|signing|signed)\b" + GAP + r"{0,25}?"
         r"(?P<text>\d{4}-\d{2}-\d{2})", to_iso_date),
]

REVENUE = [
    rule(r"\b(?:ltm\s+|trailing\s+|annual\s+)?(?:revenues?|sales)\b" + CONN + MONEY, to_money),
    rule(MONEY + r"\s+(?:(?:of|in)\s+)?(?:ltm\s+|trailing\s+|annual\s+)?(?:revenues?|sales)\b", to_money),
    rule(r"\b(?:revenues?|sales)\s*[=:]\s*\$?\s*" + BARE_MONEY, to_money),
]

LTM_EBITDA = [
    rule(r"\b(?:ltm\s+|trailing\s+|adjusted\s+)?ebitda\b" + CONN + MONEY, to_money),
    rule(MONEY + r"\s+(?:(?:of|in)\s+)?(?:ltm\s+|trailing\s+|adjusted\s+)?ebitda\b", to_money),
    rule(r"\bebitda\s*[=:]\s*\$?\s*" + BARE_MONEY, to_money),
]

REVENUE_GROWTH_RATES = [
    rule(r"\bgrow\w*\b" + GAP + r"{0,40}?"
         r"(?P<sched>\d+(?:\.\d+)?\s*%(?:\s*(?:,\s*and|,|/|and|then)\s*\d+(?:\.\d+)?\s*%)+)",
         to_schedule),
]

REVENUE_GROWTH_RATE = [
    rule(PCT + r"\s*(?:annual\s+|annually\s+|yoy\s+|organic\s+)?(?:revenue\s+|top[- ]line\s+|sales\s+)?(?:growth|cagr)\b",
         percent_points),
    rule(r"\bgrow(?:th|s|ing)?\b(?:\s+(?:rate|of|at|by|revenues?|sales|annually))*" + CONN + PCT, percent_points),
    rule(r"\bcagr\b" + CONN + PCT, percent_points),
]

BASE_EBITDA_MARGIN = [
    rule(PCT + r"\s*(?:ebitda\s+)?margins?\b", percent_points, unless_after=MARGIN_CHANGE),
    rule(r"\b(?:ebitda\s+)?margins?\b" + CONN + PCT, percent_points, unless_after=r"\b(?:target|exit)\b"),
]

TARGET_EBITDA_MARGIN = [
    rule(r"\b(?:target|exit)\s+(?:ebitda\s+)?margins?\b" + CONN + PCT, percent_points),
    rule(r"\bmargins?\b" + GAP + r"{0,40}?\b(?:expand\w*|improv\w*|increas\w*|ris\w*|grow\w*|reach\w*)\b"
         + GAP + r"{0,20}?\bto\s+" + PCT, percent_points),
    rule(PCT + r"\s*target\s+(?:ebitda\s+)?margins?\b", percent_points),
]

MARGIN_EXPANSION_YEARS = [
    rule(r"\bmargins?\b" + _within(r"exit\w*|hold\w*|debt|senior|sub(?:ordinated)?")
         + r"\b(?:over|within|in)\s+(?:the\s+next\s+|the\s+first\s+)?" + INT + YEARS, to_count),
    rule(r"\bmargin\s+expansion\s+(?:period\s+)?(?:of|over)\s+" + INT + YEARS, to_count),
]

DA_PERCENT = [
    rule(PCT + r"\s*(?:of\s+(?:revenues?|sales)\s+)?(?:for\s+|in\s+)?"
         r"(?:d\s*&\s*a|depreciation(?:\s+(?:and|&)\s+amortization)?)", percent_points),
    rule(r"(?:\bd\s*&\s*a|\bdepreciation(?:\s+(?:and|&)\s+amortization)?)\b" + GAP + r"{0,30}?" + PCT,
         percent_points),
]

CAPEX_PERCENT = [
    rule(PCT + r"\s*(?:of\s+(?:revenues?|sales)\s+)?(?:for\s+|in\s+)?"
         r"(?:capex|cap[- ]ex|capital\s+expenditures?)\b", percent_points),
    rule(r"\b(?:capex|cap[- ]ex|capital\s+expenditures?)\b" + GAP + r"{0,30}?" + PCT, percent_points),
]

NWC_PERCENT = [
    rule(PCT + r"\s*(?:of\s+(?:revenues?|sales)\s+)?(?:for\s+|in\s+)?"
         r"(?:nwc|(?:net\s+)?working\s+capital)\b", percent_points),
    rule(r"\b(?:nwc|(?:net\s+)?working\s+capital)\b" + GAP + r"{0,30}?" + PCT, percent_points),
]

TAX_RATE = [
    rule(PCT + r"\s*(?:cash\s+|effective\s+|corporate\s+|marginal\s+)?tax\b", percent_points),
    rule(r"\btax(?:\s+rate)?\b" + GAP + r"{0,20}?" + PCT, percent_points),
    rule(r"\btax\s+rate\s*(?:[=:]|of|is)\s*" + NUM + GUARD, to_percent),
]


# ---------------------------------------------------------------------------
# 2. Entry / transaction
# ---------------------------------------------------------------------------

PURCHASE_PRICE = [
    rule(r"\b(?:ev|tev|enterprise\s+value|purchase\s+price|transaction\s+value|deal\s+value)\b" + CONN + MONEY,
         to_money),
    rule(r"\b(?:buy(?:s|ing)?|acquir(?:e|es|ing)|purchas(?:e|es|ing))\b[^.$;]{0,60}?\b(?:for|at)\s+" + MONEY,
         to_money),
    rule(MONEY + r"\s+(?:purchase\s+price|ev|tev|enterprise\s+value|valuation)\b", to_money),
    rule(r"\b(?:ev|tev|enterprise\s+value|purchase\s+price)\s*[=:]\s*\$?\s*" + BARE_MONEY, to_money),
]

ENTRY_MULTIPLE = [
    rule(r"\b(?:entry|purchase|buy(?:ing)?|acqui(?:re|red|ring|sition)|pay(?:ing)?|valued|priced?)\b"
         r"[\s:=~]*(?:(?:multiple|price|at|of|for|is|was|an?|valuation|ev/ebitda)[\s:=~]+)*" + MULT,
         to_number),
    rule(MULT + r"\s*(?:ltm\s+|ebitda\s+)*(?:entry|purchase)\b", to_number),
    rule(MULT + r"\s*(?:ltm\s+|trailing\s+|adjusted\s+)?ebitda\b", to_number, unless_after=DEBT_CONTEXT),
    rule(r"\bmultiple\s*[=:]\s*" + MULT_OR_BARE, to_number, unless_after=DEBT_CONTEXT),
]

TRANSACTION_COSTS = [
    rule(r"\b(?:transaction|deal|closing|advisory)\s+(?:fees?|costs?|expenses?)\b" + CONN + MONEY, to_money),
    rule(MONEY + r"\s+(?:(?:of|in)\s+)?(?:transaction|deal|closing|advisory)\s+(?:fees?|costs?|expenses?)\b",
         to_money),
]

TRANSACTION_COST_PERCENT = [
    rule(r"\b(?:transaction|deal|closing|advisory)\s+(?:fees?|costs?|expenses?)\b" + CONN + PCT, percent_points),
    rule(PCT + r"\s+(?:(?:of|in)\s+)?(?:transaction|deal|closing|advisory)\s+(?:fees?|costs?|expenses?)\b",
         percent_points),
]

FINANCING_FEES = [
    rule(r"\b(?:financing|debt|arrangement|underwriting)\s+(?:fees?|costs?)\b" + CONN + MONEY, to_money),
    rule(MONEY + r"\s+(?:(?:of|in)\s+)?(?:financing|debt|arrangement|underwriting)\s+(?:fees?|costs?)\b",
         to_money),
]

FINANCING_FEE_PERCENT = [
    rule(r"\b(?:financing|debt|arrangement|underwriting)\s+(?:fees?|costs?)\b" + CONN + PCT, percent_points),
    rule(PCT + r"\s+(?:(?:of|in)\s+)?(?:financing|debt|arrangement|underwriting)\s+(?:fees?|costs?)\b",
         percent_points),
]

MANAGEMENT_ROLLOVER = [
    rule(r"\bno\s+(?:management\s+|mgmt\s+)?(?:roll[- ]?over|equity\s+roll)", constant(0.0)),
    rule(r"\b(?:management|mgmt)\s+(?:roll[- ]?over|rolls?(?:\s+over)?|equity\s+roll(?:over)?)(?:\s+equity)?\b"
         + CONN + MONEY, to_money),
    rule(MONEY + r"\s+(?:(?:of|in)\s+)?(?:management\s+|mgmt\s+)?(?:roll[- ]?over|rolled)\b", to_money),
]


# ---------------------------------------------------------------------------
# 3. Financing
# ---------------------------------------------------------------------------

SENIOR_DEBT_MULTIPLE = [
    rule(MULT + r"\s*(?:(?:ltm|ebitda|of|in)\s+)*" + SENIOR, to_number),
    rule(SENIOR + SENIOR_TAIL + r"[\s:=~]*(?:(?:of|at|is|=)\s+)*" + MULT, to_number),
]

SENIOR_DEBT_AMOUNT = [
    rule(MONEY + r"\s+(?:(?:of|in)\s+)?" + SENIOR, to_money),
    rule(SENIOR + SENIOR_TAIL + CONN + MONEY, to_money),
]

SENIOR_DEBT_RATE = [
    rule(SENIOR + _within(r"sub(?:ordinated)?|mezz(?:anine)?|junior|second[- ]lien|" + OTHER_TERMS) + PCT + NOT_COUPON,
         percent_points),
]

SENIOR_AMORTIZATION_PERCENT = [
    rule(PCT + r"\s*(?:(?:annual|annually|mandatory|required|per\s+(?:year|annum))\s+)*amorti[sz]\w*",
         percent_points),
    rule(r"\bamorti[sz]\w*" + _within(r"sub(?:ordinated)?|mezz(?:anine)?|tax|growth|margins?|sweep|fees?|costs?|pik")
         + PCT + r"(?!\s*(?:(?:of\s+)?(?:excess\s+|free\s+)?(?:cash(?:\s+flow)?\s+)?sweep))", percent_points),
]

SUB_DEBT_MULTIPLE = [
    rule(MULT + r"\s*(?:(?:ltm|ebitda|of|in)\s+)*" + SUB, to_number),
    rule(SUB + SUB_TAIL + r"[\s:=~]*(?:(?:of|at|is|=)\s+)*" + MULT, to_number),
]

SUB_DEBT_AMOUNT = [
    rule(MONEY + r"\s+(?:(?:of|in)\s+)?" + SUB, to_money),
    rule(SUB + SUB_TAIL + CONN + MONEY, to_money),
]

SUB_DEBT_RATE = [
    rule(SUB + _within(r"senior|first[- ]lien|term\s+loan|" + OTHER_TERMS) + PCT + NOT_COUPON, percent_points),
]

SUB_DEBT_PIK = [
    rule(PCT + r"\s*(?:pik|payment[- ]in[- ]kind)\b", percent_points),
    rule(r"\b(?:pik|payment[- ]in[- ]kind)\b" + CONN + r"(?:(?:interest|toggle|accretion|rate)\s+)*" + CONN + PCT,
         percent_points),
]

CASH_SWEEP_PERCENT = [
    rule(PCT + r"\s*(?:of\s+)?(?:excess\s+|free\s+)?(?:cash(?:\s+flow)?\s+)?sweep", percent_points),
    rule(r"\bsweep\w*\b" + GAP + r"{0,30}?" + PCT, percent_points),
    rule(PCT + r"\s*of\s+(?:excess|free)\s+cash(?:\s+flow)?\s+(?:to|used\s+to|applied\s+to)\s+(?:repay|pay\s*down)",
         percent_points),
]


# ---------------------------------------------------------------------------
# 4. Exit
# ---------------------------------------------------------------------------

EXIT_YEAR = [
    rule(INT + YEARS + r"\s+(?:investment\s+)?hold", to_count),
    rule(r"\bhold(?:ing)?(?:\s+period)?\b[\s:=~]*(?:(?:of|for|is)\s+)*" + INT + YEARS, to_count),
    rule(r"\bexit\w*\b" + _within(r"entry") + r"\b(?:after|in|within)\s+" + INT + YEARS, to_count),
    rule(r"\bexit\w*\b" + _within(r"entry") + r"\b(?:in|at(?:\s+the)?\s+end\s+of)\s+year\s+" + INT, to_count),
    rule(r"\byear\s+" + INT + r"\s+exit\b", to_count),
    rule(INT + YEARS + r"\s+(?:investment\s+)?horizon", to_count),
]

EXIT_MULTIPLE = [
    rule(r"\bexit\w*\b[\s:=~]*(?:(?:at|multiple|of|is|=|an?|ev/ebitda|valuation)[\s:=~]+)*" + MULT, to_number),
    rule(r"\bexit\s+multiple\b[\s:=~]*(?:(?:of|is)\s+)*" + MULT_OR_BARE, to_number),
    rule(MULT + r"\s*(?:(?:ltm|ebitda)\s+)*exit\b", to_number),
    rule(r"\bexit\w*\b" + _within(r"entry|senior|sub(?:ordinated)?|debt") + r"\b(?:at|of)\s+(?:an?\s+)?" + MULT,
         to_number),
]

EXIT_COST_PERCENT = [
    rule(r"\bexit\s+(?:transaction\s+)?(?:fees?|costs?|expenses?)\b" + CONN + PCT, percent_points),
    rule(PCT + r"\s+(?:(?:of|in)\s+)?exit\s+(?:transaction\s+)?(?:fees?|costs?|expenses?)\b", percent_points),
]


# ---------------------------------------------------------------------------
# Rule table, keyed by catalog field name
# ---------------------------------------------------------------------------

LBO_RULES = {
    "company_name":                COMPANY_NAME,
    "transaction_date":            TRANSACTION_DATE,
    "base_year_revenue":           REVENUE,
    "ltm_ebitda":                  LTM_EBITDA,
    "revenue_growth_rate":         REVENUE_GROWTH_RATE,
    "revenue_growth_rates":        REVENUE_GROWTH_RATES,
    "base_ebitda_margin":          BASE_EBITDA_MARGIN,
    "target_ebitda_margin":        TARGET_EBITDA_MARGIN,
    "margin_expansion_years":      MARGIN_EXPANSION_YEARS,
    "da_percent":                  DA_PERCENT,
    "capex_percent":               CAPEX_PERCENT,
    "nwc_percent":                 NWC_PERCENT,
    "tax_rate":                    TAX_RATE,
    "purchase_price":              PURCHASE_PRICE,
    "entry_multiple":              ENTRY_MULTIPLE,
    "transaction_cost_percent":    TRANSACTION_COST_PERCENT,
    "transaction_costs":           TRANSACTION_COSTS,
    "financing_fee_percent":       FINANCING_FEE_PERCENT,
    "financing_fees":              FINANCING_FEES,
    "management_rollover":         MANAGEMENT_ROLLOVER,
    "senior_debt_multiple":        SENIOR_DEBT_MULTIPLE,
    "senior_debt_amount":          SENIOR_DEBT_AMOUNT,
    "senior_debt_rate":            SENIOR_DEBT_RATE,
    "senior_amortization_percent": SENIOR_AMORTIZATION_PERCENT,
    "sub_debt_multiple":           SUB_DEBT_MULTIPLE,
    "sub_debt_amount":             SUB_DEBT_AMOUNT,
    "sub_debt_rate":               SUB_DEBT_RATE,
    "sub_debt_pik":                SUB_DEBT_PIK,
    "cash_sweep_percent":          CASH_SWEEP_PERCENT,
    "exit_year":                   EXIT_YEAR,
    "exit_multiple":               EXIT_MULTIPLE,
    "exit_cost_percent":           EXIT_COST_PERCENT,
}
