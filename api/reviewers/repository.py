"""
Reviewer statistics queries against the wiki replica (raw SQL).
"""

from __future__ import annotations

from core import db

# Edit summaries left by the AfC helper script, in both scripts.
ACCEPT_SUMMARY = (
    "(`comment_text` LIKE \"%发布已接受的[[PJ:AFC|条目建立]]草稿%\" "
    "OR `comment_text` LIKE \"%發布已接受的[[PJ:AFC|條目建立]]草稿%\")"
)
DECLINE_SUMMARY = "(`comment_text` LIKE \"%仍需改善的草稿%\")"
REJECT_SUMMARY = (
    "(`comment_text` LIKE \"%拒绝再次提交的草稿%\" "
    "OR `comment_text` LIKE \"%拒絕再次提交的草稿%\")"
)

REVIEW_WINDOW_DAYS = 28

REVIEWER_STATS_SQL = f"""
SELECT
    COUNT(`rc_id`) AS `reviews`,
    `actor_name` AS `user`,
    SUM{ACCEPT_SUMMARY} AS `acceptCount`,
    SUM{DECLINE_SUMMARY} AS `declineCount`,
    SUM{REJECT_SUMMARY} AS `rejectCount`,
    CONCAT(ROUND(SUM{ACCEPT_SUMMARY} * 100 / COUNT(`rc_id`), 1), "%") AS `acceptPercentage`,
    CONCAT(ROUND(SUM{DECLINE_SUMMARY} * 100 / COUNT(`rc_id`), 1), "%") AS `declinePercentage`,
    CONCAT(ROUND(SUM{REJECT_SUMMARY} * 100 / COUNT(`rc_id`), 1), "%") AS `rejectPercentage`
FROM `recentchanges_userindex`
LEFT JOIN `actor` ON `rc_actor` = `actor_id`
LEFT JOIN `comment` ON `rc_comment_id` = `comment_id`
WHERE
    (`rc_namespace` = 118 OR `rc_namespace` = 2 OR `rc_namespace` = 0)
    AND (`rc_type` < 5)
    AND ({ACCEPT_SUMMARY} OR {DECLINE_SUMMARY} OR {REJECT_SUMMARY})
    AND (`rc_timestamp` >= DATE_ADD(NOW(), INTERVAL -{REVIEW_WINDOW_DAYS} DAY))
GROUP BY `rc_actor`
ORDER BY `reviews` DESC
"""

SYSOP_PATROLLER_SQL = """
SELECT DISTINCT user_name
FROM user
LEFT JOIN user_groups ON user_id = ug_user
WHERE ug_group = "sysop" OR ug_group = "patroller"
ORDER BY user_name ASC
"""


async def list_reviewer_stats() -> list[dict]:
    return await db.fetch_all(REVIEWER_STATS_SQL)


async def list_sysop_patroller_names() -> list[str]:
    rows = await db.fetch_all(SYSOP_PATROLLER_SQL)
    return [str(row["user_name"]) for row in rows]
