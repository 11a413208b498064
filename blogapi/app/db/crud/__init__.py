"""CRUD operations, one module per aggregate."""

from blogapi.app.db.crud.user import (
    add_reaction,
    count_blog_reactions,
    count_user_reactions,
    count_users,
    get_user_by_id,
    has_reaction,
    insert_user,
    list_reaction_blog_ids,
    list_users,
    remove_reaction,
    update_user_name,
    user_exists,
)

__all__ = [
    "add_reaction",
    "count_blog_reactions",
    "count_user_reactions",
    "count_users",
    "get_user_by_id",
    "has_reaction",
    "insert_user",
    "list_reaction_blog_ids",
    "list_users",
    "remove_reaction",
    "update_user_name",
    "user_exists",
]
