"""SQLAlchemy persistence for products, images and coupons."""
