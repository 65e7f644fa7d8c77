from storefront.logger import get_logger
from storefront.models import database as store
from storefront.models.schemas import CartLine, CartView, ProductSnapshot
from storefront.services.errors import NotFound, StorefrontError
from storefront.services.notifications import Notifier

logger = get_logger("cart")


def _line_from_row(row: dict) -> CartLine:
    snapshot = ProductSnapshot(
        name=row.get("product_name") or "Producto sin nombre",
        price=float(row.get("product_price") or 0),
        image_url=row.get("product_image_url"),
    )
    return CartLine(
        id=row["id"],
        product_id=row["product_id"],
        quantity=row["quantity"],
        product=snapshot,
    )


class CartSession:
    """Store-backed view of one session's cart.

    Every mutation goes through the store and is followed by a full reload, so
    ``view`` only ever holds what the store last returned. Failures are caught
    here, logged once, turned into a notification and recorded in
    ``last_error``; the view is left as it was.

    ``is_loading`` is only observable by in-process callers holding the
    session across an ``add_item`` await; the HTTP layer builds one
    ``CartSession`` per request and does not report it.
    """

    def __init__(self, db_path: str, session_id: str, notifier: Notifier):
        self.db_path = db_path
        self.session_id = session_id
        self.notifier = notifier
        self.view = CartView()
        self.is_loading = False
        self.last_error: StorefrontError | None = None

    @property
    def total_items(self) -> int:
        return self.view.total_items

    @property
    def total_price(self) -> float:
        return self.view.total_price

    def _fail(self, error: StorefrontError, title: str, description: str) -> bool:
        logger.error("session %s: %s", self.session_id, error)
        self.last_error = error
        self.notifier.error(title, description)
        return False

    async def _reload(self):
        rows = await store.get_cart_lines(self.db_path, self.session_id)
        self.view = CartView(lines=[_line_from_row(row) for row in rows])

    async def load(self) -> bool:
        try:
            await self._reload()
        except StorefrontError as e:
            return self._fail(e, "Error", "No se pudo cargar el carrito")
        self.last_error = None
        return True

    async def add_item(self, product_id: str, quantity: int = 1) -> bool:
        self.is_loading = True
        try:
            product = await store.get_product(self.db_path, product_id)
            if product is None:
                raise NotFound(f"product {product_id} does not exist")
            await store.add_cart_quantity(self.db_path, self.session_id, product_id, quantity)
            await self._reload()
        except NotFound as e:
            return self._fail(e, "Error", "Producto no encontrado")
        except StorefrontError as e:
            return self._fail(e, "Error", "No se pudo añadir el producto al carrito")
        finally:
            self.is_loading = False

        logger.info("session %s: added %d x %s", self.session_id, quantity, product_id)
        self.last_error = None
        self.notifier.info("Producto añadido", f"{product['name']} se ha añadido al carrito")
        return True

    async def remove_item(self, line_id: str) -> bool:
        try:
            await store.delete_cart_line(self.db_path, self.session_id, line_id)
            await self._reload()
        except StorefrontError as e:
            return self._fail(e, "Error", "No se pudo eliminar el producto del carrito")
        self.last_error = None
        self.notifier.info("Producto eliminado", "El producto se ha eliminado del carrito")
        return True

    async def set_quantity(self, line_id: str, quantity: int) -> bool:
        if quantity <= 0:
            return await self.remove_item(line_id)
        try:
            await store.update_cart_line(self.db_path, self.session_id, line_id, quantity)
            await self._reload()
        except StorefrontError as e:
            return self._fail(e, "Error", "No se pudo actualizar la cantidad")
        self.last_error = None
        return True

    async def clear(self) -> bool:
        try:
            await store.delete_cart_lines(self.db_path, self.session_id)
        except StorefrontError as e:
            return self._fail(e, "Error", "No se pudo limpiar el carrito")
        # empty is known without a round trip
        self.view = CartView()
        self.last_error = None
        self.notifier.info("Carrito limpiado", "Se han eliminado todos los productos del carrito")
        return True
