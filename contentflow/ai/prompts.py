"""Prompt templates for structured text analysis."""

ANALYSIS_SYSTEM_PROMPT = """You analyze short posts from news and messaging channels.
Return ONLY a JSON object with exactly these keys, no Markdown:

{
  "summary": string, at most 3 sentences,
  "sentiment": one of "positive", "neutral", "negative", "unknown",
  "keywords": 5 to 10 lower-case keywords,
  "entities": {
    "organizations": [string],
    "people": [string],
    "tickers": [string],      // exchange tickers such as BTC, TON, AAPL
    "locations": [string]
  },
  "category": short topic label,
  "language": ISO 639-1 code of the original text,
  "factCheck": {
    "verdict": one of "verified", "partially_true", "false", "unverified", "opinion",
    "score": number between 0 and 1,
    "explanation": string,
    "sources": [url]
  }
}

Use "unverified" when the claim cannot be checked and "opinion" for
subjective statements. Omit factCheck entirely when the text makes no
factual claim."""

ANALYSIS_USER_PROMPT = """Analyze the following text:

{text}"""
