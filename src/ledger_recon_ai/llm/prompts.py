"""Fixed instruction templates sent to the hosted model."""

from typing import Sequence

from ..models.rates import RateRecord

RECONCILE_INSTRUCTION = """You are an expert accountant. Your task is to reconcile two ledgers from {party_a} and {party_b}.

Carefully analyze the transactions in both PDF documents provided. A transaction is defined by its date, description/bill number, and amount. A match requires all three fields to be identical.

While you work, narrate your progress as short plain-text sentences, one per line (for example "Reading {party_a} ledger..." or "Found 12 transactions in {party_b}.").
Never start a progress line with "{{".

When the analysis is complete, end with exactly ONE JSON object written on a single line, and emit no other text after it. It MUST strictly follow this schema:
- "summary": A short plain-text summary of the reconciliation.
- "matches": An array of transactions found in both ledgers.
- "partyADiscrepancies": An array of transactions present in {party_a}'s ledger but missing from {party_b}'s.
- "partyBDiscrepancies": An array of transactions present in {party_b}'s ledger but missing from {party_a}'s.

A transaction object has "date" (YYYY-MM-DD), "description" (string), and "amount" (number).

The first attached document is the {party_a} ledger. The second attached document is the {party_b} ledger.
"""

ESTIMATE_PRICE_INSTRUCTION = """You are a financial analyst specializing in price forecasting for retail products.
Your task is to predict the next final price (including GST) for a given product based on its historical price data.

Analyze the provided historical rates for the product: '{product}'.
The data is sorted from most recent to oldest.

{history}

Identify any trends, seasonality, or patterns in the price history. Based on your analysis, provide a single numerical estimate for the next final price.
Also, provide a concise, one or two-sentence reasoning for your prediction. Do not provide a long analysis.

Respond with a JSON object: {{"estimatedPrice": number, "reasoning": string}}.
"""

SUMMARIZE_TRENDS_INSTRUCTION = """You are an expert analyst summarizing product rate trends.

Analyze the provided rate history for the product: {product}.

Rate History:
{history}

Provide a summary of the rate trends, identify any outliers, and provide a prediction for future rates.
Focus on identifying key trends, significant outliers, and potential future rate movements based on the historical data.

Respond with a JSON object: {{"summary": string, "outliers": [{{"date": string, "rate": number, "reason": string}}], "prediction": string}}.
"""


def reconcile_prompt(party_a: str = "Party A", party_b: str = "Party B") -> str:
    return RECONCILE_INSTRUCTION.format(party_a=party_a, party_b=party_b)


def estimate_price_prompt(product: str, history: Sequence[RateRecord]) -> str:
    lines = "\n".join(
        f"- Date: {r.bill_date.isoformat()}, Base Rate: {r.rate}, GST: {r.gst}%" for r in history
    )
    return ESTIMATE_PRICE_INSTRUCTION.format(product=product, history=lines)


def summarize_trends_prompt(product: str, history: Sequence[RateRecord]) -> str:
    lines = "\n".join(f"- Date: {r.bill_date.isoformat()}, Rate: {r.rate}" for r in history)
    return SUMMARIZE_TRENDS_INSTRUCTION.format(product=product, history=lines)
