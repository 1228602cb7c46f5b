"""
Examples for llm-profiles
==========================
Three complete examples, one per output mode.

Run:
    python examples/examples.py
"""

from __future__ import annotations

import json
import sys
from datetime import date, datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from llm_profiles import (
    MissingRequiredFields,
    ProfileBuilder,
    ProfileValidator,
)


def _show(document: dict) -> None:
    for line in json.dumps(document, indent=2, ensure_ascii=False).splitlines():
        print(f"    {line}")


# ---------------------------------------------------------------------------
# Example 1: News article (strict-seo)
# ---------------------------------------------------------------------------


def example_news_article() -> None:
    """
    Example 1: A news article for search engines.

    strict-seo decorates the document with the profile URL so crawlers that
    only read standard Schema.org keys still see which profile it follows.
    """
    print("\n" + "="*60)
    print("EXAMPLE 1: Article (strict-seo)")
    print("="*60)

    builder = (
        ProfileBuilder.article()
        .headline("City Council Approves New Bike Lanes")
        .author({"@type": "Person", "name": "Jane Doe"})
        .date_published(datetime(2025, 1, 15, 8, 30, tzinfo=timezone.utc))
        .description("The council voted 7-2 to add 12 km of protected lanes.")
        .publisher("Daily Planet", "https://dailyplanet.example", "https://dailyplanet.example/logo.png")
        .add_keyword("transport")
        .add_keyword("city council")
    )

    result = builder.validate()
    print(f"  Builder:    {builder!r}")
    print(f"  Validation: {result}")
    for step in result.next_steps():
        print(f"    → {step}")

    _show(builder.finalize())

    # Missing required fields stop finalize() unless asked otherwise
    try:
        ProfileBuilder.article().headline("Draft").finalize()
    except MissingRequiredFields as e:
        print(f"  Draft rejected: {e.fields}")

    print("  ✓ Example 1 complete")


# ---------------------------------------------------------------------------
# Example 2: Conference talk (split-channels)
# ---------------------------------------------------------------------------


def example_event_channels() -> None:
    """
    Example 2: One event, two channels.

    The primary channel is plain Schema.org for search engines; the
    alternate channel carries the profile metadata for LLM consumers.
    """
    print("\n" + "="*60)
    print("EXAMPLE 2: Event (split-channels)")
    print("="*60)

    builder = (
        ProfileBuilder.event(mode="split-channels")
        .name("Structured Data in Practice")
        .start_date("2025-06-12T14:00:00+02:00")
        .location({"@type": "Place", "name": "Hall A", "address": "Messeplatz 1, Basel"})
        .organizer({"@type": "Organization", "name": "Open Data Forum"})
    )

    channels = builder.finalize()
    print("  Primary channel:")
    _show(channels["primary"])
    print("  Alternate channel:")
    _show(channels["alternate"])

    # The same fields rendered under another mode
    doc = builder.finalize("strict-seo")
    print(f"  strict-seo identifier: {doc['identifier']}")
    print("  ✓ Example 2 complete")


# ---------------------------------------------------------------------------
# Example 3: Job posting (standards-header) and batch validation
# ---------------------------------------------------------------------------


def example_job_posting() -> None:
    """
    Example 3: A job posting served with an HTTP Link header.

    standards-header keeps the body clean; the profile travels as a link
    hint instead. Existing documents are then scored in one batch.
    """
    print("\n" + "="*60)
    print("EXAMPLE 3: JobPosting (standards-header)")
    print("="*60)

    builder = (
        ProfileBuilder.job_posting(mode="standards-header")
        .title("Senior Data Engineer")
        .hiring_organization({"@type": "Organization", "name": "Acme Analytics"})
        .job_location("Zurich, Switzerland")
        .employment_type("FULL_TIME")
        .date_posted(date(2025, 2, 1))
        .valid_through(date(2025, 3, 31))
        .base_salary(120000, 150000, "YEAR", currency="CHF")
    )

    _show(builder.finalize())
    print(f"  Link: {builder.link_header}")
    print(f'  <link rel="profile" href="{builder.rel_profile}">')

    batch = ProfileValidator().validate_batch([
        builder.finalize(),
        {"@type": "JobPosting", "title": "Intern"},
        {"@type": "Product", "name": "Widget", "offers": {"@type": "Offer", "price": 9.5}},
    ])
    print(f"\n  Batch: {batch}")
    for result in batch.results:
        print(f"    {result}")
    print("  ✓ Example 3 complete")


# ---------------------------------------------------------------------------
# Run all examples
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    example_news_article()
    example_event_channels()
    example_job_posting()

    print("\n" + "="*60)
    print("All examples completed successfully.")
    print("="*60 + "\n")
