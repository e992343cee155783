import logging

from flask import Blueprint, request, jsonify

from petgroom import db
from petgroom.errors import NotFoundError, ForbiddenError, ConflictError, InvalidDataError
from petgroom.models import Package, PackagePrice
from petgroom.schemas.package import PackageSchema, PackageUpdateSchema, PackageOutSchema, PackagePriceOutSchema
from petgroom.utils.auth import owner_required, current_owner_id

logger = logging.getLogger(__name__)

packages_bp = Blueprint('packages', __name__)
package_prices_bp = Blueprint('package_prices', __name__)

PACKAGE_FIELDS = ('name', 'description', 'duration', 'is_active')


def get_owned_package(package_id):
    package = db.session.get(Package, package_id)
    if not package:
        raise NotFoundError('Package not found')
    if package.user_id != current_owner_id():
        raise ForbiddenError('You do not have permission to edit this package')
    return package


def apply_prices(package, prices):
    """Insert new tiers and correct existing ones. Each recurrence appears once per package.

    Tiers in use by subscriptions or appointments only accept price
    corrections; their recurrence is fixed.
    """
    existing = {price.id: price for price in package.prices}
    recurrences = [p['recurrence'] for p in prices]
    if len(recurrences) != len(set(recurrences)):
        raise InvalidDataError('Each recurrence can only have one price')

    for price_data in prices:
        if price_data.get('id'):
            price = existing.get(price_data['id'])
            if price is None:
                raise NotFoundError('Package price not found')
            recurrence = price_data['recurrence']
            if recurrence != price.recurrence:
                if price.is_referenced:
                    raise ConflictError('Recurrence of a package price in use cannot be changed')
                if any(p is not price and p.recurrence == recurrence for p in package.prices):
                    raise ConflictError(f'Package already has a price every {recurrence} days')
                price.recurrence = recurrence
            price.price = price_data['price']
            if 'is_active' in price_data:
                price.is_active = price_data['is_active']
        else:
            clash = next((p for p in package.prices if p.recurrence == price_data['recurrence']), None)
            if clash is not None:
                clash.price = price_data['price']
                continue
            package.prices.append(PackagePrice(
                recurrence=price_data['recurrence'],
                price=price_data['price'],
                is_active=price_data.get('is_active', True)
            ))


@packages_bp.route('', methods=['GET'])
@owner_required
def list_packages():
    query = Package.query.filter_by(user_id=current_owner_id())
    if request.args.get('active_only', '').lower() == 'true':
        query = query.filter(Package.is_active.is_(True))
    packages = query.order_by(Package.name).all()
    return jsonify(PackageOutSchema(many=True).dump(packages)), 200


@packages_bp.route('', methods=['POST'])
@owner_required
def create_package():
    data = PackageSchema().load(request.get_json() or {})
    package = Package(user_id=current_owner_id())
    for field_name in PACKAGE_FIELDS:
        if field_name in data:
            setattr(package, field_name, data[field_name])
    try:
        apply_prices(package, data.get('prices') or [])
        db.session.add(package)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info("Created package %s with %d prices", package.id, len(package.prices))
    return jsonify(PackageOutSchema().dump(package)), 201


@packages_bp.route('/<package_id>', methods=['GET'])
@owner_required
def get_package(package_id):
    return jsonify(PackageOutSchema().dump(get_owned_package(package_id))), 200


@packages_bp.route('/<package_id>', methods=['PATCH'])
@owner_required
def update_package(package_id):
    package = get_owned_package(package_id)
    data = PackageUpdateSchema().load(request.get_json() or {})
    if not data:
        raise InvalidDataError('No data to update')
    try:
        for field_name in PACKAGE_FIELDS:
            if field_name in data:
                setattr(package, field_name, data[field_name])
        if 'prices' in data:
            apply_prices(package, data['prices'])
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return jsonify(PackageOutSchema().dump(package)), 200


@packages_bp.route('/<package_id>', methods=['DELETE'])
@owner_required
def delete_package(package_id):
    package = get_owned_package(package_id)
    if any(price.is_referenced for price in package.prices):
        raise ConflictError('Package is used by subscriptions or appointments; deactivate it instead')
    try:
        db.session.delete(package)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return jsonify({'message': 'Package deleted successfully'}), 200


@package_prices_bp.route('', methods=['GET'])
@owner_required
def list_package_prices():
    prices = (PackagePrice.query
              .join(Package, PackagePrice.package_id == Package.id)
              .filter(Package.user_id == current_owner_id(), PackagePrice.is_active.is_(True))
              .order_by(Package.name, PackagePrice.recurrence)
              .all())
    return jsonify([
        dict(PackagePriceOutSchema().dump(price), package_name=price.package.name)
        for price in prices
    ]), 200


@package_prices_bp.route('/<price_id>', methods=['DELETE'])
@owner_required
def delete_package_price(price_id):
    price = db.session.get(PackagePrice, price_id)
    if not price or price.package.user_id != current_owner_id():
        raise NotFoundError('Package price not found')
    if price.is_referenced:
        raise ConflictError('Package price is used by subscriptions or appointments')
    removed = PackagePriceOutSchema().dump(price)
    try:
        price.package.prices.remove(price)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return jsonify(removed), 200
