def restaurant_scope(actor):
    return getattr(actor, 'restaurant_id', None)


def scoped(queryset, actor):
    """Limit a queryset to the actor's restaurant, when one is set."""
    restaurant_id = restaurant_scope(actor)
    if restaurant_id is None:
        return queryset
    return queryset.filter(restaurant_id=restaurant_id)
