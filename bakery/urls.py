from django.urls import path
from . import admin_views, views

urlpatterns = [
    path('', views.home, name='home'),  # homepage
    path('cakes/', views.all_cakes, name='cakes'),
    path('category/', views.category_view, name='category'),
    path('product/', views.product_detail, name='product_detail'),
    path('cart/', views.cart_view, name='cart'),
    path('cart/add/', views.add_to_cart, name='add_to_cart'),
    path('cart/remove/', views.remove_from_cart, name='remove_from_cart'),
    path('cart/update/', views.update_cart_item, name='update_cart_item'),
    path('checkout/', views.checkout, name='checkout'),
    path('payment/', views.payment, name='payment'),
]

# Reached by the gateway and by page scripts; never language-prefixed.
api_urlpatterns = [
    path('callback/mpesa', views.mpesa_callback, name='mpesa_callback'),
    path('order/status', views.order_status, name='order_status'),
]

backoffice_urlpatterns = [
    path('login/', admin_views.login_view, name='backoffice_login'),
    path('logout/', admin_views.logout_view, name='backoffice_logout'),
    path('dashboard/', admin_views.dashboard, name='backoffice_dashboard'),
    path('order/status/', admin_views.update_order_status, name='backoffice_order_status'),
    path('orders/view/', admin_views.order_detail, name='backoffice_order_detail'),
    path('categories/', admin_views.categories, name='backoffice_categories'),
    path('categories/add/', admin_views.add_category, name='backoffice_add_category'),
    path('categories/delete/', admin_views.delete_category, name='backoffice_delete_category'),
    path('products/', admin_views.products, name='backoffice_products'),
    path('products/add/', admin_views.add_product, name='backoffice_add_product'),
    path('products/edit/', admin_views.edit_product, name='backoffice_edit_product'),
    path('products/delete/', admin_views.delete_product, name='backoffice_delete_product'),
]
