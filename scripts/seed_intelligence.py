"""
Seed the intelligence feed with starter posts.

Only runs when the feed is empty, so it is safe to call on every deploy:

    python scripts/seed_intelligence.py
"""
import asyncio
import sys
from datetime import timedelta

sys.path.insert(0, ".")

from sqlalchemy import func, select

from app.core.database import close_db, get_db_session, init_db
from app.core.utc import utc_now
from app.models.models import IntelligencePost
from app.services.intelligence import bulk_insert

# (hours ago, category, title, source, summary, insight, tags)
STARTER_POSTS = [
    (
        2, "industry",
        "New-generation LFP cells pass 255 Wh/kg in pilot production",
        "New Energy Industry Watch",
        "A leading cell maker announced a third-generation LFP platform reaching 255 Wh/kg, "
        "12% above the previous generation, with 10-minute fast charging to 80%. Volume "
        "production is planned for Q2 and the first customers are two premium EV brands.",
        "Higher density LFP will squeeze mid-range cell suppliers on price. Track which vehicle "
        "makers switch suppliers and reach their purchasing teams early.",
        ["LFP", "energy density", "fast charging"],
    ),
    (
        5, "competitor",
        "Major rival prepares separate listing of its battery unit",
        "Financial Wire",
        "People familiar with the matter say a large automaker is accelerating a standalone IPO "
        "of its battery subsidiary, expected to file in the second half of the year. The unit "
        "already supplies several outside automakers.",
        "An independent listing means the rival will chase external customers harder. Shore up "
        "relationships with second-tier automakers before their next sourcing round.",
        ["competition", "IPO", "market share"],
    ),
    (
        8, "supply_chain",
        "Battery-grade lithium carbonate falls to an 18-month low",
        "Metals Market Daily",
        "Spot battery-grade lithium carbonate dropped 3.8% week on week on upstream oversupply "
        "and slower downstream demand growth. Analysts expect further softness in the near term.",
        "Lower raw material cost is a lever in price talks. Coordinate with purchasing to lock in "
        "inventory while prices are low.",
        ["lithium", "raw materials", "pricing"],
    ),
    (
        12, "industry",
        "EU battery carbon-footprint declarations take effect",
        "Business Daily",
        "Carbon-footprint declarations under the EU Batteries Regulation are now mandatory for "
        "EV batteries sold in the bloc. Only a handful of exporters have completed certification.",
        "Certified suppliers will command a premium in European tenders. Engage the certification "
        "team now and make compliance part of the sales pitch.",
        ["EU regulation", "carbon footprint", "export"],
    ),
]


def starter_rows(now):
    return [
        {
            "category": category,
            "title": title,
            "source": source,
            "summary": summary,
            "ai_insight": insight,
            "tags": tags,
            "published_at": now - timedelta(hours=hours),
            "created_at": now,
        }
        for hours, category, title, source, summary, insight, tags in STARTER_POSTS
    ]


async def seed():
    await init_db()
    async with get_db_session() as db:
        existing = (await db.execute(select(func.count(IntelligencePost.id)))).scalar_one()
        if existing:
            print(f"ℹ️  Feed already has {existing} posts, nothing to seed")
        else:
            count = await bulk_insert(db, starter_rows(utc_now()))
            print(f"✅ Seeded {count} intelligence posts")
    await close_db()


if __name__ == "__main__":
    asyncio.run(seed())
