"""
Client-side state for the recipe app screens.

These classes hold form and profile state and talk to the JSON API through
RecipeApiClient; they carry no rendering concerns.
"""
