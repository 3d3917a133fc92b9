#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from sharedcart.data.models.cart import SharedCartModel
from sharedcart.data.models.cart_member import SharedCartMemberModel
from sharedcart.data.models.cart_item import SharedCartItemModel

__all__ = ["SharedCartModel", "SharedCartMemberModel", "SharedCartItemModel"]
