from carecoord.views.projection import RoleProjection, matches_search, project

__all__ = ["project", "matches_search", "RoleProjection"]
