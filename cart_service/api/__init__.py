# cart_service/api/__init__.py
