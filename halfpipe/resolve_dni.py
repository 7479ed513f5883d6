"""
halfpipe/resolve_dni.py
Works out why each DNI run in the judge scores table was not scored: a crash,
a strategic skip, or unknown.
Checks public sources in priority order (FIS results, sports news, video
search metadata) with a headless browser, then falls back to inferring from
the rider's earlier scores.
Run: python resolve_dni.py
Output: ../data/processed/dni_resolved.csv
        ../results/dni_resolution.json
"""
import asyncio
import json
import re
from dataclasses import dataclass
from datetime import date
from urllib.parse import quote_plus

from bs4 import BeautifulSoup
from playwright.async_api import async_playwright

from errors import run_script
from load_data import DNI_CSV, RESULTS_DIR, load_performances, write_table

FIS_URLS = [
    "https://www.fis-ski.com/DB/general/results.html?sectorcode=SB&raceid=2026HP001",
    "https://live.fis-ski.com/sb-hp/2026/results",
]
NEWS_SOURCES = [
    ("https://www.nbcolympics.com/news/snowboard-halfpipe-mens-final-results-2026", "NBC Olympics"),
    ("https://www.eurosport.com/snowboard/milano-cortina-2026/halfpipe-men-final", "Eurosport"),
    ("https://www.bbc.co.uk/sport/winter-olympics/2026/snowboard-halfpipe", "BBC Sport"),
]
VIDEO_SEARCH_URL = "https://www.youtube.com/results?search_query={query}"
VIDEO_QUERIES = [
    "men halfpipe final milano cortina 2026 highlights",
    "snowboard halfpipe final 2026 olympics results",
]
REQUEST_DELAY = 2.0      # seconds between requests
PAGE_TIMEOUT = 30000     # ms

FIS_ROW_SELECTOR = 'table tr, .result-row, .athlete-result'
ARTICLE_SELECTOR = 'article, .article-body, .story-body, main'
FIS_CRASH_CODES = ('DNF', 'DSQ', 'FALL', 'fall')
FIS_SKIP_CODES = ('DNS',)

CRASH_WORDS = r'(fell|crashed|wiped out|tumbled|bailed|went down)'
SKIP_WORDS = r'(sat out|chose not|opted out|skipped|conserved|protected)'
SECURED_WORDS = r'(already secured|safe|comfortable|did not need)'
VIDEO_CRASH_WORDS = r'(fell|crashed|fall|wipeout)'

ELITE_SCORE = 90.0
HIGH_SCORE = 85.0
CLEAN_SCORE = 50.0
FULL_RUN_TRICKS = 4

CONFIDENCE_RANK = {'high': 3, 'medium': 2, 'low': 1, 'none': 0}

CSV_HEADER = ['competitor', 'country', 'position', 'run', 'trick_count',
              'dni_reason', 'source', 'confidence', 'evidence']


@dataclass(frozen=True)
class DniCase:
    competitor: str
    country: str
    position: int
    round: int
    trick_count: int

    @property
    def key(self) -> tuple[str, int]:
        return (self.competitor, self.round)

    @property
    def last_name(self) -> str:
        return self.competitor.split()[-1]


@dataclass(frozen=True)
class Finding:
    reason: str          # crash / strategic_skip / unknown
    source: str
    confidence: str      # high / medium / low / none
    evidence: str = ''


def dni_cases(records) -> list[DniCase]:
    return [
        DniCase(r.competitor, r.country, r.position, r.round, r.trick_count)
        for r in records if r.is_incomplete
    ]


def prior_scores(records) -> dict:
    """{(competitor, round): numeric finals from that rider's earlier rounds}"""
    finals = {}
    for r in sorted(records, key=lambda r: r.round):
        if r.final_score is not None:
            finals.setdefault(r.competitor, []).append((r.round, r.final_score))
    return {
        r.key: [score for rnd, score in finals.get(r.competitor, []) if rnd < r.round]
        for r in records if r.is_incomplete
    }


def sanitize(text: str) -> str:
    """Make free text safe for the comma-delimited tables."""
    return ' '.join(text.replace(',', ';').split())


def _scores(values) -> str:
    return '; '.join(f'{v:.2f}' for v in values)


def parse_fis_statuses(html: str, cases) -> dict:
    """Run status codes from FIS result rows that mention a DNI rider."""
    soup = BeautifulSoup(html, 'html.parser')
    findings = {}
    for row in soup.select(FIS_ROW_SELECTOR):
        text = row.get_text(' ', strip=True)
        for case in cases:
            if case.last_name not in text:
                continue
            if any(code in text for code in FIS_CRASH_CODES):
                findings[case.key] = Finding('crash', 'FIS results', 'high', sanitize(text))
            elif any(code in text for code in FIS_SKIP_CODES):
                findings[case.key] = Finding('strategic_skip', 'FIS results', 'high', sanitize(text))
    return findings


def article_text(html: str) -> str:
    soup = BeautifulSoup(html, 'html.parser')
    return ' '.join(el.get_text(' ', strip=True) for el in soup.select(ARTICLE_SELECTOR))


def find_news_clues(text: str, cases, source: str) -> dict:
    """Crash or skip wording within a sentence of a rider's last name."""
    text = text.lower()
    findings = {}
    for case in cases:
        name = re.escape(case.last_name.lower())
        crash_patterns = [
            rf'{name}[^.]{{0,100}}{CRASH_WORDS}',
            rf'{CRASH_WORDS}[^.]{{0,100}}{name}',
            rf'{name}[^.]{{0,100}}run {case.round}[^.]{{0,100}}(fell|crash|fall)',
        ]
        skip_patterns = [
            rf'{name}[^.]{{0,100}}{SKIP_WORDS}',
            rf'{name}[^.]{{0,100}}{SECURED_WORDS}',
        ]
        for reason, patterns in (('crash', crash_patterns), ('strategic_skip', skip_patterns)):
            match = next((m for m in (re.search(p, text) for p in patterns) if m), None)
            if match:
                findings[case.key] = Finding(reason, source, 'medium', sanitize(match.group(0)))
                break
    return findings


def find_video_clues(text: str, cases) -> dict:
    text = text.lower()
    findings = {}
    for case in cases:
        name = re.escape(case.last_name.lower())
        match = (re.search(rf'{name}[^.]{{0,200}}{VIDEO_CRASH_WORDS}', text)
                 or re.search(rf'{VIDEO_CRASH_WORDS}[^.]{{0,200}}{name}', text))
        if match:
            findings[case.key] = Finding('crash', 'video metadata', 'low', sanitize(match.group(0)))
    return findings


def infer_from_prior_scores(case: DniCase, scores) -> Finding:
    """Guess the DNI reason from what the rider already had on the board.

    A rider with no earlier run counts as having no clean run.
    """
    best = max(scores, default=0.0)
    if best >= ELITE_SCORE:
        return Finding('strategic_skip', f'heuristic: already had elite score >={ELITE_SCORE:g}',
                       'high', f'Best prior score: {best:.2f}')
    if best >= HIGH_SCORE:
        return Finding('strategic_skip', f'heuristic: already had score >={HIGH_SCORE:g}',
                       'medium', f'Best prior score: {best:.2f}')
    if best < CLEAN_SCORE:
        if case.trick_count < FULL_RUN_TRICKS:
            return Finding('crash', 'heuristic: no clean runs + incomplete tricks', 'low',
                           f'Only {case.trick_count} tricks; prior scores: {_scores(scores)}')
        return Finding('unknown', 'heuristic: ambiguous (no clean runs but full tricks)', 'low',
                       f'{case.trick_count} tricks; prior scores: {_scores(scores)}')
    return Finding('unknown', 'heuristic: ambiguous (had clean run but not high)', 'low',
                   f'Prior scores: {_scores(scores)}')


def merge_findings(cases, *sources) -> dict:
    """Pick one finding per case: highest confidence, earlier source on ties."""
    merged = {}
    for case in cases:
        best = None
        for findings in sources:
            finding = findings.get(case.key)
            if finding is None:
                continue
            if best is None or CONFIDENCE_RANK[finding.confidence] > CONFIDENCE_RANK[best.confidence]:
                best = finding
        merged[case.key] = best or Finding('unknown', 'no data found', 'none')
    return merged


async def fetch_html(page, url: str) -> str:
    await page.goto(url, wait_until='domcontentloaded', timeout=PAGE_TIMEOUT)
    return await page.content()


async def check_fis(page, cases) -> dict:
    for url in FIS_URLS:
        try:
            findings = parse_fis_statuses(await fetch_html(page, url), cases)
        except Exception as e:
            print(f"  FIS {url}: FAILED: {e}")
            findings = {}
        if findings:
            print(f"  FIS: {len(findings)} status codes")
            return findings
        await asyncio.sleep(REQUEST_DELAY)
    print("  FIS: nothing found")
    return {}


async def check_news(page, cases) -> dict:
    findings = {}
    for url, source in NEWS_SOURCES:
        open_cases = [c for c in cases if c.key not in findings]
        try:
            clues = find_news_clues(article_text(await fetch_html(page, url)), open_cases, source)
        except Exception as e:
            print(f"  {source}: FAILED: {e}")
            clues = {}
        if clues:
            print(f"  {source}: {len(clues)} clues")
        findings.update(clues)
        await asyncio.sleep(REQUEST_DELAY)
    return findings


async def check_video(page, cases) -> dict:
    findings = {}
    for query in VIDEO_QUERIES:
        open_cases = [c for c in cases if c.key not in findings]
        url = VIDEO_SEARCH_URL.format(query=quote_plus(query))
        try:
            findings.update(find_video_clues(await fetch_html(page, url), open_cases))
        except Exception as e:
            print(f"  video search '{query}': FAILED: {e}")
        await asyncio.sleep(REQUEST_DELAY)
    return findings


async def scrape_sources(cases) -> tuple[dict, dict, dict]:
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=True)
        page = await browser.new_page()
        fis = await check_fis(page, cases)
        news = await check_news(page, cases)
        video = await check_video(page, cases)
        await browser.close()
    return fis, news, video


def resolve(cases, priors, fis=None, news=None, video=None) -> dict:
    heuristics = {case.key: infer_from_prior_scores(case, priors.get(case.key, [])) for case in cases}
    return merge_findings(cases, fis or {}, news or {}, video or {}, heuristics)


def csv_rows(cases, resolved):
    for case in cases:
        f = resolved[case.key]
        yield [
            case.competitor, case.country, case.position, case.round, case.trick_count,
            f.reason, sanitize(f.source), f.confidence, sanitize(f.evidence),
        ]


def build_output(cases, resolved, updated_at: str = None) -> dict:
    summary = {'crash': 0, 'strategic_skip': 0, 'unknown': 0}
    for finding in resolved.values():
        summary[finding.reason] += 1
    return {
        'updated_at':      updated_at or str(date.today()),
        'total_cases':     len(cases),
        'summary':         summary,
        'sources_checked': ['FIS results', 'news articles', 'video metadata', 'heuristic inference'],
        'cases': [
            {
                'competitor':  c.competitor,
                'run':         c.round,
                'position':    c.position,
                'trick_count': c.trick_count,
                'reason':      resolved[c.key].reason,
                'source':      resolved[c.key].source,
                'confidence':  resolved[c.key].confidence,
                'evidence':    resolved[c.key].evidence,
            }
            for c in cases
        ],
    }


def main():
    records = load_performances()
    cases = dni_cases(records)
    print(f"Resolving {len(cases)} DNI runs...")
    for c in cases:
        print(f"  {c.competitor:<25} run {c.round} (position {c.position}, {c.trick_count} tricks)")

    fis, news, video = asyncio.run(scrape_sources(cases))
    resolved = resolve(cases, prior_scores(records), fis, news, video)
    output = build_output(cases, resolved)

    write_table(DNI_CSV, CSV_HEADER, csv_rows(cases, resolved))
    out_path = RESULTS_DIR / 'dni_resolution.json'
    out_path.parent.mkdir(exist_ok=True)
    with open(out_path, 'w') as f:
        json.dump(output, f, indent=2)

    s = output['summary']
    print(f"\nDone. {s['crash']} crashes, {s['strategic_skip']} strategic skips, "
          f"{s['unknown']} unknown -> {DNI_CSV}, {out_path}")


if __name__ == '__main__':
    run_script(main)
