"""
Coachie collection names.

Services receive the database through their constructor and look their
collections up by these names.
"""

USERS = "users"
FRIEND_REQUESTS = "friendrequests"
CIRCLES = "circles"
CONVERSATIONS = "conversations"
FORUMS = "forums"
FORUM_POSTS = "forumposts"
FORUM_COMMENTS = "forumcomments"
NOTIFICATIONS = "notifications"
