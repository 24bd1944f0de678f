"""
Archetype and theme catalog: listing and startup seeding
"""
from typing import Dict, List

from sqlalchemy.orm import Session

from pairmatch.core.logging_config import LoggingConfig
from pairmatch.models.catalog import Archetype, Theme

logger = LoggingConfig.get_logger(__name__)

DEFAULT_ARCHETYPES: List[Dict] = [
    {
        "code": "CRUD_APP",
        "display_name": "CRUD Application",
        "structure_description": "Standard create-read-update-delete application with search, filtering, "
                                 "and data management capabilities.",
        "component_patterns": "CRUD,REST,Pagination,Search,Forms,Validation",
        "api_patterns": "REST",
        "min_complexity": 1,
        "max_complexity": 3,
    },
    {
        "code": "REAL_TIME_APP",
        "display_name": "Real-Time Application",
        "structure_description": "Application with live updates via WebSocket or Server-Sent Events. "
                                 "Users see changes instantly without refreshing.",
        "component_patterns": "WebSocket,EventDriven,LiveUpdate,Notifications",
        "api_patterns": "REST,WebSocket",
        "min_complexity": 2,
        "max_complexity": 4,
    },
    {
        "code": "DATA_VISUALIZATION",
        "display_name": "Data Visualization",
        "structure_description": "Dashboard-style application with charts, graphs, and data insights. "
                                 "Focuses on presenting data in meaningful ways.",
        "component_patterns": "Charts,Analytics,Dashboard,Filters,DataAggregation",
        "api_patterns": "REST",
        "min_complexity": 2,
        "max_complexity": 4,
    },
    {
        "code": "MARKETPLACE",
        "display_name": "Marketplace",
        "structure_description": "Platform where users can list, browse, and interact around items or services. "
                                 "Includes search, profiles, and user-to-user interaction.",
        "component_patterns": "Listing,Search,UserProfiles,Messaging,Categories",
        "api_patterns": "REST",
        "min_complexity": 3,
        "max_complexity": 5,
    },
    {
        "code": "SOCIAL_FEED",
        "display_name": "Social Feed",
        "structure_description": "Content-sharing platform with posting, reactions, following, and a "
                                 "personalized feed. Social interaction is the core.",
        "component_patterns": "Feed,Reactions,UserRelations,ContentPosting,Infinite Scroll",
        "api_patterns": "REST,WebSocket",
        "min_complexity": 2,
        "max_complexity": 4,
    },
    {
        "code": "GAMIFIED_APP",
        "display_name": "Gamified Application",
        "structure_description": "Application that uses game mechanics like points, streaks, leaderboards, "
                                 "and achievements to engage users.",
        "component_patterns": "Scoring,Leaderboard,Achievements,Streaks,Progress",
        "api_patterns": "REST",
        "min_complexity": 2,
        "max_complexity": 4,
    },
    {
        "code": "DASHBOARD",
        "display_name": "Dashboard",
        "structure_description": "Overview application with multiple panels, metrics, settings, and "
                                 "customizable views. Management and monitoring focused.",
        "component_patterns": "Panels,Metrics,Filters,Settings,StatusCards",
        "api_patterns": "REST",
        "min_complexity": 2,
        "max_complexity": 3,
    },
    {
        "code": "AUTOMATION_TOOL",
        "display_name": "Automation Tool",
        "structure_description": "Tool that automates workflows with scheduling, triggers, and rule-based "
                                 "actions. Productivity and efficiency focused.",
        "component_patterns": "Scheduling,Triggers,Workflows,Rules,Notifications",
        "api_patterns": "REST",
        "min_complexity": 3,
        "max_complexity": 5,
    },
]

DEFAULT_THEMES: List[Dict] = [
    {
        "code": "finance",
        "display_name": "Finance",
        "domain_context": "Financial data, budgets, transactions, investments, spending analysis, "
                          "and money management.",
        "example_entities": "budget,transaction,portfolio,account,payment",
    },
    {
        "code": "health",
        "display_name": "Health & Fitness",
        "domain_context": "Workouts, nutrition, habits, wellness tracking, fitness goals, and health metrics.",
        "example_entities": "workout,exercise,meal,healthMetric,goal",
    },
    {
        "code": "education",
        "display_name": "Education",
        "domain_context": "Courses, quizzes, progress tracking, learning paths, study materials, "
                          "and knowledge sharing.",
        "example_entities": "course,quiz,lesson,progress,student",
    },
    {
        "code": "gaming",
        "display_name": "Gaming",
        "domain_context": "Scores, matches, players, game sessions, challenges, and competitive features.",
        "example_entities": "player,match,score,leaderboard,challenge",
    },
    {
        "code": "social",
        "display_name": "Social",
        "domain_context": "Posts, profiles, connections, messaging, sharing, and community building.",
        "example_entities": "post,comment,profile,connection,message",
    },
    {
        "code": "e-commerce",
        "display_name": "E-Commerce",
        "domain_context": "Products, carts, orders, reviews, wishlists, and online shopping experiences.",
        "example_entities": "product,cart,order,review,category",
    },
    {
        "code": "productivity",
        "display_name": "Productivity",
        "domain_context": "Tasks, projects, time tracking, goals, notes, and personal organization.",
        "example_entities": "task,project,timer,goal,note",
    },
    {
        "code": "entertainment",
        "display_name": "Entertainment",
        "domain_context": "Movies, books, music, reviews, recommendations, and content discovery.",
        "example_entities": "movie,book,playlist,review,recommendation",
    },
]


class CatalogService:
    """Read access to the catalog and idempotent seeding of the defaults"""

    def __init__(self, db: Session):
        self.db = db

    def list_archetypes(self, active_only: bool = True) -> List[Archetype]:
        query = self.db.query(Archetype)
        if active_only:
            query = query.filter(Archetype.active.is_(True))
        return query.order_by(Archetype.min_complexity, Archetype.code).all()

    def list_themes(self, active_only: bool = True) -> List[Theme]:
        query = self.db.query(Theme)
        if active_only:
            query = query.filter(Theme.active.is_(True))
        return query.order_by(Theme.code).all()

    def seed_defaults(self) -> Dict[str, int]:
        """
        Insert default archetypes and themes whose codes are missing.

        Existing rows are left untouched, so running this on every startup is safe.

        Returns:
            Number of inserted archetypes and themes
        """
        existing_archetypes = {code for (code,) in self.db.query(Archetype.code).all()}
        existing_themes = {code for (code,) in self.db.query(Theme.code).all()}

        new_archetypes = [
            Archetype(active=True, **data)
            for data in DEFAULT_ARCHETYPES
            if data["code"] not in existing_archetypes
        ]
        new_themes = [
            Theme(active=True, **data)
            for data in DEFAULT_THEMES
            if data["code"] not in existing_themes
        ]

        self.db.add_all(new_archetypes + new_themes)
        self.db.commit()

        if new_archetypes or new_themes:
            logger.info(
                f"Seeded {len(new_archetypes)} archetypes and {len(new_themes)} themes",
                extra={"archetypes": len(new_archetypes), "themes": len(new_themes)},
            )
        else:
            logger.debug("Catalog already seeded")

        return {"archetypes": len(new_archetypes), "themes": len(new_themes)}
