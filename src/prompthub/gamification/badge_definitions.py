"""Badge catalog data. 24 badges across six categories.

Leveled badges declare the shared criteria once and override parameters per
level; ``catalog.load_catalog`` merges and validates them.
"""

from __future__ import annotations

BADGE_CATALOG_DATA: list[dict] = [
    # Content creation
    {
        "id": "first_prompt",
        "name": "First Steps",
        "description": "Created your first prompt",
        "icon": "\U0001f331",
        "tier": "common",
        "category": "content_creation",
        "criteria": {"type": "threshold", "field": "total_prompts", "threshold": 1},
    },
    {
        "id": "prolific_creator",
        "name": "Prolific Creator",
        "description": "Created multiple prompts",
        "icon": "\U0001f4dd",
        "tier": "uncommon",
        "category": "content_creation",
        "criteria": {"type": "threshold", "field": "total_prompts"},
        "levels": [
            {"level": 1, "name": "Bronze Creator", "tier": "common", "params": {"threshold": 10}},
            {"level": 2, "name": "Silver Creator", "tier": "uncommon", "params": {"threshold": 50}},
            {"level": 3, "name": "Gold Creator", "tier": "rare", "params": {"threshold": 100}},
            {"level": 4, "name": "Platinum Creator", "tier": "epic", "params": {"threshold": 500}},
        ],
    },
    {
        "id": "multi_agent_master",
        "name": "Multi-Agent Master",
        "description": "Created prompts for 5+ different AI agents",
        "icon": "\U0001f916",
        "tier": "rare",
        "category": "content_creation",
        "criteria": {"type": "diversity", "attribute": "agents", "min_count": 5},
    },
    {
        "id": "category_explorer",
        "name": "Category Explorer",
        "description": "Created prompts in 5+ different categories",
        "icon": "\U0001f5fa️",
        "tier": "rare",
        "category": "content_creation",
        "criteria": {"type": "diversity", "attribute": "categories", "min_count": 5},
    },
    {
        "id": "quality_craftsman",
        "name": "Quality Craftsman",
        "description": "Maintain a 4.5+ star average rating across 10+ rated prompts",
        "icon": "⭐",
        "tier": "epic",
        "category": "content_creation",
        "criteria": {"type": "quality", "min_rating": 4.5, "min_prompts": 10},
    },
    # Engagement
    {
        "id": "popular_creator",
        "name": "Popular Creator",
        "description": "Received likes across all prompts",
        "icon": "❤️",
        "tier": "uncommon",
        "category": "engagement",
        "criteria": {"type": "threshold", "field": "total_likes"},
        "levels": [
            {"level": 1, "name": "Liked", "tier": "common", "params": {"threshold": 100}},
            {"level": 2, "name": "Well-Liked", "tier": "uncommon", "params": {"threshold": 500}},
            {"level": 3, "name": "Beloved", "tier": "rare", "params": {"threshold": 1000}},
            {"level": 4, "name": "Adored", "tier": "epic", "params": {"threshold": 5000}},
        ],
    },
    {
        "id": "bookmarked",
        "name": "Bookmarked",
        "description": "Prompts saved by other users",
        "icon": "\U0001f516",
        "tier": "uncommon",
        "category": "engagement",
        "criteria": {"type": "threshold", "field": "total_saves"},
        "levels": [
            {"level": 1, "name": "Saved", "tier": "common", "params": {"threshold": 50}},
            {"level": 2, "name": "Bookmarked", "tier": "uncommon", "params": {"threshold": 200}},
            {"level": 3, "name": "Treasured", "tier": "rare", "params": {"threshold": 500}},
            {"level": 4, "name": "Essential", "tier": "epic", "params": {"threshold": 1000}},
        ],
    },
    {
        "id": "viral_hit",
        "name": "Viral Hit",
        "description": "Created a prompt with 100+ likes",
        "icon": "\U0001f680",
        "tier": "rare",
        "category": "engagement",
        "criteria": {"type": "viral"},
    },
    # Social
    {
        "id": "influencer",
        "name": "Influencer",
        "description": "Gained followers in the community",
        "icon": "\U0001f451",
        "tier": "rare",
        "category": "social",
        "criteria": {"type": "threshold", "field": "followers"},
        "levels": [
            {"level": 1, "name": "Rising Star", "tier": "uncommon", "params": {"threshold": 50}},
            {"level": 2, "name": "Influencer", "tier": "rare", "params": {"threshold": 100}},
            {"level": 3, "name": "Celebrity", "tier": "epic", "params": {"threshold": 500}},
            {"level": 4, "name": "Legend", "tier": "legendary", "params": {"threshold": 1000}},
        ],
    },
    {
        "id": "networker",
        "name": "Networker",
        "description": "Following 50+ users",
        "icon": "\U0001f91d",
        "tier": "uncommon",
        "category": "social",
        "criteria": {"type": "threshold", "field": "following", "threshold": 50},
    },
    {
        "id": "community_builder",
        "name": "Community Builder",
        "description": "100+ followers and following 50+ users",
        "icon": "\U0001f3d7️",
        "tier": "epic",
        "category": "social",
        "criteria": {"type": "social", "min_followers": 100, "min_following": 50},
    },
    # Time based
    {
        "id": "pioneer",
        "name": "Pioneer",
        "description": "Joined during the first days of Prompt Hub",
        "icon": "\U0001f3f4",
        "tier": "legendary",
        "category": "time_based",
        "criteria": {"type": "pioneer", "cutoff": "2024-01-01T00:00:00Z"},
    },
    {
        "id": "veteran",
        "name": "Veteran",
        "description": "Long-time community member",
        "icon": "\U0001f396️",
        "tier": "rare",
        "category": "time_based",
        "criteria": {"type": "account_age"},
        "levels": [
            {"level": 1, "name": "Established", "tier": "uncommon", "params": {"min_days": 180}},
            {"level": 2, "name": "Veteran", "tier": "rare", "params": {"min_days": 365}},
            {"level": 3, "name": "Elder", "tier": "epic", "params": {"min_days": 730}},
        ],
    },
    {
        "id": "consistent_contributor",
        "name": "Consistent Contributor",
        "description": "Created prompts on consecutive days",
        "icon": "\U0001f4c5",
        "tier": "rare",
        "category": "time_based",
        "criteria": {"type": "threshold", "field": "consecutive_days"},
        "levels": [
            {"level": 1, "name": "Week Warrior", "tier": "common", "params": {"threshold": 7}},
            {"level": 2, "name": "Month Master", "tier": "uncommon", "params": {"threshold": 30}},
            {"level": 3, "name": "Quarter Champion", "tier": "rare", "params": {"threshold": 90}},
            {"level": 4, "name": "Year Legend", "tier": "legendary", "params": {"threshold": 365}},
        ],
    },
    {
        "id": "weekend_warrior",
        "name": "Weekend Warrior",
        "description": "Created 10+ prompts on Saturdays and Sundays",
        "icon": "\U0001f3d6️",
        "tier": "uncommon",
        "category": "time_based",
        "criteria": {"type": "threshold", "field": "weekend_prompts", "threshold": 10},
    },
    # Comments
    {
        "id": "first_comment",
        "name": "First Comment",
        "description": "Left your first comment on a prompt",
        "icon": "\U0001f4ac",
        "tier": "common",
        "category": "engagement",
        "criteria": {"type": "threshold", "field": "total_comments", "threshold": 1},
    },
    {
        "id": "conversationalist",
        "name": "Conversationalist",
        "description": "Active in community discussions",
        "icon": "\U0001f5e3️",
        "tier": "uncommon",
        "category": "engagement",
        "criteria": {"type": "threshold", "field": "total_comments"},
        "levels": [
            {"level": 1, "name": "Chatter", "tier": "common", "params": {"threshold": 10}},
            {"level": 2, "name": "Conversationalist", "tier": "uncommon", "params": {"threshold": 50}},
            {"level": 3, "name": "Discussion Leader", "tier": "rare", "params": {"threshold": 100}},
            {"level": 4, "name": "Community Voice", "tier": "epic", "params": {"threshold": 500}},
        ],
    },
    {
        "id": "helpful_commenter",
        "name": "Helpful Commenter",
        "description": "Comments that receive lots of likes",
        "icon": "\U0001f44d",
        "tier": "rare",
        "category": "engagement",
        "criteria": {"type": "helpful_commenter", "min_comments": 5, "min_likes": 10},
    },
    {
        "id": "discussion_starter",
        "name": "Discussion Starter",
        "description": "Comments that spark conversations",
        "icon": "\U0001f525",
        "tier": "rare",
        "category": "engagement",
        "criteria": {"type": "discussion_starter", "min_comments": 3, "min_replies": 5},
    },
    {
        "id": "community_helper",
        "name": "Community Helper",
        "description": "Actively helps other users through replies",
        "icon": "\U0001f64c",
        "tier": "epic",
        "category": "social",
        "criteria": {"type": "community_helper", "min_replies": 20, "min_unique_users": 10},
    },
    # Specialty
    {
        "id": "chatgpt_master",
        "name": "ChatGPT Master",
        "description": "Expert in ChatGPT prompts",
        "icon": "\U0001f916",
        "tier": "rare",
        "category": "specialty",
        "criteria": {"type": "specialty", "agents": ["ChatGPT"], "min_prompts": 50},
    },
    {
        "id": "claude_expert",
        "name": "Claude Expert",
        "description": "Expert in Claude prompts",
        "icon": "\U0001f9e0",
        "tier": "rare",
        "category": "specialty",
        "criteria": {"type": "specialty", "agents": ["Claude"], "min_prompts": 50},
    },
    {
        "id": "image_wizard",
        "name": "Image Wizard",
        "description": "Master of image generation prompts",
        "icon": "\U0001f3a8",
        "tier": "rare",
        "category": "specialty",
        "criteria": {
            "type": "specialty",
            "agents": ["Stable Diffusion", "DALL-E", "Midjourney"],
            "categories": ["Image Generation"],
            "min_prompts": 20,
        },
    },
    {
        "id": "code_whisperer",
        "name": "Code Whisperer",
        "description": "Expert in development prompts",
        "icon": "\U0001f4bb",
        "tier": "rare",
        "category": "specialty",
        "criteria": {"type": "specialty", "categories": ["Development"], "min_prompts": 20},
    },
]
