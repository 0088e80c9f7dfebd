from django.db.models import Count, Q, Sum
from rest_framework import viewsets
from rest_framework.decorators import action

from apps.audit.services import record_audit
from apps.catalog.models import Brand, Product
from apps.catalog.serializers import BrandSerializer, ProductListQuerySerializer, ProductSerializer
from apps.common.permissions import RolePermission
from apps.common.responses import ok


class ProductViewSet(viewsets.ModelViewSet):
    serializer_class = ProductSerializer
    permission_classes = [RolePermission]
    capability_map = {
        "list": ["view_products"],
        "retrieve": ["view_products"],
        "create": ["manage_products"],
        "partial_update": ["manage_products"],
        "update": ["manage_products"],
        "destroy": ["manage_products"],
    }

    def get_queryset(self):
        queryset = Product.objects.select_related("brand")
        params = ProductListQuerySerializer.from_request(self.request) if self.action == "list" else {}

        search = params.get("search")
        if search:
            queryset = queryset.filter(
                Q(model__icontains=search)
                | Q(imei__icontains=search)
                | Q(color__icontains=search)
                | Q(brand__name__icontains=search)
            )

        brand_id = params.get("brand_id")
        if brand_id:
            queryset = queryset.filter(brand_id=brand_id)
        return queryset

    def _snapshot(self, product):
        return {
            "brand": product.brand.name,
            "model": product.model,
            "imei": product.imei,
            "purchase_price": str(product.purchase_price),
            "selling_price": str(product.selling_price),
            "quantity": product.quantity,
        }

    def perform_create(self, serializer):
        product = serializer.save()
        record_audit(
            actor=self.request.user,
            action="catalog.product.create",
            entity_type="product",
            entity_id=product.id,
            payload=self._snapshot(product),
        )

    def perform_update(self, serializer):
        before = self._snapshot(serializer.instance)
        product = serializer.save()
        record_audit(
            actor=self.request.user,
            action="catalog.product.update",
            entity_type="product",
            entity_id=product.id,
            payload={"before": before, "after": self._snapshot(product)},
        )

    def perform_destroy(self, instance):
        record_audit(
            actor=self.request.user,
            action="catalog.product.delete",
            entity_type="product",
            entity_id=instance.id,
            payload=self._snapshot(instance),
        )
        super().perform_destroy(instance)


class BrandViewSet(viewsets.ModelViewSet):
    serializer_class = BrandSerializer
    permission_classes = [RolePermission]
    capability_map = {
        "create": ["manage_products"],
        "update": ["manage_products"],
        "partial_update": ["manage_products"],
        "destroy": ["manage_products"],
        "statistics": ["view_products"],
    }

    def get_queryset(self):
        queryset = Brand.objects.annotate(products_count=Count("products")).order_by("name")
        search = self.request.query_params.get("search")
        if search:
            queryset = queryset.filter(name__icontains=search.strip())
        return queryset

    def perform_create(self, serializer):
        brand = serializer.save()
        record_audit(
            actor=self.request.user,
            action="catalog.brand.create",
            entity_type="brand",
            entity_id=brand.id,
            payload={"name": brand.name},
        )

    def perform_destroy(self, instance):
        record_audit(
            actor=self.request.user,
            action="catalog.brand.delete",
            entity_type="brand",
            entity_id=instance.id,
            payload={"name": instance.name},
        )
        super().perform_destroy(instance)

    @action(detail=False, methods=["get"])
    def statistics(self, request):
        top_brands = (
            Brand.objects.annotate(total_products=Count("products"), total_stock=Sum("products__quantity"))
            .order_by("-total_products", "name")[:10]
        )
        return ok(
            {
                "total_brands": Brand.objects.count(),
                "brands_with_products": Brand.objects.filter(products__isnull=False).distinct().count(),
                "top_brands": [
                    {
                        "id": str(brand.id),
                        "name": brand.name,
                        "total_products": brand.total_products,
                        "total_stock": brand.total_stock or 0,
                    }
                    for brand in top_brands
                ],
            }
        )
