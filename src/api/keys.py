# cache key factories, one namespace per resource


class product_keys:
    all = ("products",)

    @staticmethod
    def lists():
        return product_keys.all + ("list",)

    @staticmethod
    def list(filters):
        return product_keys.lists() + (filters,)

    @staticmethod
    def details():
        return product_keys.all + ("detail",)

    @staticmethod
    def detail(product_id: str):
        return product_keys.details() + (product_id,)

    @staticmethod
    def admin():
        return product_keys.all + ("admin",)


class order_keys:
    all = ("orders",)

    @staticmethod
    def details():
        return order_keys.all + ("detail",)

    @staticmethod
    def detail(order_id: str):
        return order_keys.details() + (order_id,)

    @staticmethod
    def mine():
        return order_keys.all + ("my",)

    @staticmethod
    def admin():
        return order_keys.all + ("admin",)

    @staticmethod
    def admin_detail(order_id: str):
        return order_keys.admin() + ("detail", order_id)

    @staticmethod
    def stats():
        return order_keys.all + ("stats",)


class user_keys:
    all = ("users",)

    @staticmethod
    def admin():
        return user_keys.all + ("admin",)

    @staticmethod
    def admin_detail(user_id: str):
        return user_keys.admin() + ("detail", user_id)


class auth_keys:
    user = ("auth", "user")


class payment_keys:
    stripe_key = ("stripe", "key")
