"""
Bundled template presets: a color palette, font choices and a section layout
per template type. Validated by services.presets.TemplatePreset on load.

Container children may be given as `blocks` or `settings.blocks`; both are
persisted as child rows when the preset is applied.
"""

MODERN_FASHION = {
    "id": "modern-fashion",
    "name": "Modern Fashion",
    "description": "Minimal and elegant layout for fashion stores",
    "category": "fashion",
    "compatible_themes": ["base", "minimal"],
    "settings": {
        "colors": {
            "primary": "#000000",
            "secondary": "#666666",
            "accent": "#8B0000",
            "background": "#ffffff",
            "text": "#333333",
        },
        "fonts": {"heading": "Playfair Display", "body": "Inter"},
        "spacing": {"containerWidth": "1200px", "sectionPadding": "80px"},
    },
    "templates": {
        "homepage": {
            "name": "Modern Fashion Homepage",
            "sections": [
                {
                    "type": "hero",
                    "settings": {
                        "layout": "fullWidth",
                        "height": "large",
                        "overlayEnabled": True,
                        "overlayOpacity": 20,
                        "contentAlignment": "center",
                    },
                    "blocks": [
                        {"type": "image", "settings": {"image": "/images/hero-fashion.jpg", "alt": "New season collection"}},
                        {"type": "text", "settings": {"text": "NEW SEASON", "fontSize": "sm", "letterSpacing": "widest"}},
                        {"type": "text", "settings": {"text": "Spring / Summer Collection", "fontSize": "4xl", "fontFamily": "heading"}},
                        {"type": "button", "settings": {"text": "Explore the collection", "url": "/collections/new-season", "style": "primary"}},
                    ],
                },
                {
                    "type": "collection-list",
                    "settings": {"layout": "grid", "columns": 3, "imageRatio": "portrait"},
                    "blocks": [
                        {"type": "collection-item", "settings": {"collection": "women", "title": "Women"}},
                        {"type": "collection-item", "settings": {"collection": "men", "title": "Men"}},
                        {"type": "collection-item", "settings": {"collection": "accessories", "title": "Accessories"}},
                    ],
                },
                {
                    "type": "featured-products",
                    "settings": {"title": "Featured products", "productCount": 4, "columns": 4, "showViewAll": True},
                },
                {
                    "type": "newsletter",
                    "settings": {"title": "Join our list", "buttonText": "Subscribe", "backgroundColor": "#f8f8f8"},
                },
            ],
        },
        "product": {
            "name": "Modern Fashion Product",
            "sections": [
                {
                    "type": "product-detail",
                    "settings": {"galleryLayout": "thumbnails-left", "showVendor": False, "stickyInfo": True},
                    "blocks": [
                        {"type": "title", "settings": {}},
                        {"type": "price", "settings": {"showCompareAt": True}},
                        {"type": "variant-picker", "settings": {"style": "buttons"}},
                        {"type": "buy-buttons", "settings": {"showDynamicCheckout": True}},
                    ],
                },
                {"type": "related-products", "settings": {"title": "You may also like", "productCount": 4}},
            ],
        },
        "collection": {
            "name": "Modern Fashion Collection",
            "sections": [
                {"type": "collection-banner", "settings": {"showDescription": True, "height": "small"}},
                {"type": "product-grid", "settings": {"columns": 3, "productsPerPage": 12, "showFilters": True}},
            ],
        },
    },
    "global_sections": {
        "header": {
            "settings": {"layout": "logo-center", "sticky": True, "showSearch": True},
            "blocks": [
                {"type": "logo", "settings": {"maxWidth": 140}},
                {"type": "menu", "settings": {"menu": "main-menu"}},
            ],
        },
        "footer": {
            "settings": {"columns": 4, "showPaymentIcons": True},
            "blocks": [
                {"type": "menu", "settings": {"title": "Shop", "menu": "footer-shop"}},
                {"type": "newsletter", "settings": {"title": "Stay in touch"}},
            ],
        },
    },
}

LUXURY_FASHION = {
    "id": "luxury-fashion",
    "name": "Luxury Fashion",
    "description": "Refined, image-led layout for premium fashion brands",
    "category": "fashion",
    "compatible_themes": ["base"],
    "settings": {
        "colors": {
            "primary": "#1a1a1a",
            "secondary": "#8c7b6b",
            "accent": "#c9a96e",
            "background": "#faf8f5",
            "text": "#2b2b2b",
        },
        "fonts": {"heading": "Cormorant Garamond", "body": "Montserrat"},
        "spacing": {"containerWidth": "1400px", "sectionPadding": "120px"},
    },
    "templates": {
        "homepage": {
            "name": "Luxury Fashion Homepage",
            "sections": [
                {
                    "type": "hero",
                    "settings": {"layout": "fullWidth", "height": "fullscreen", "overlayOpacity": 10},
                    "blocks": [
                        {"type": "text", "settings": {"text": "Maison Collection", "fontSize": "5xl", "fontFamily": "heading"}},
                        {"type": "button", "settings": {"text": "Discover", "url": "/collections/maison", "style": "outline"}},
                    ],
                },
                {
                    "type": "image-with-text",
                    "settings": {"imagePosition": "left", "title": "Crafted to last"},
                    "blocks": [
                        {
                            "type": "container",
                            "settings": {
                                "direction": "column",
                                "gap": "24px",
                                "blocks": [
                                    {"type": "text", "settings": {"text": "Every piece is made by hand in small ateliers."}},
                                    {"type": "button", "settings": {"text": "Our story", "url": "/pages/about"}},
                                ],
                            },
                        },
                    ],
                },
                {"type": "featured-products", "settings": {"title": "The edit", "productCount": 3, "columns": 3}},
            ],
        },
        "product": {
            "name": "Luxury Fashion Product",
            "sections": [
                {
                    "type": "product-detail",
                    "settings": {"galleryLayout": "stacked", "stickyInfo": True},
                    "blocks": [
                        {"type": "title", "settings": {}},
                        {"type": "price", "settings": {}},
                        {"type": "buy-buttons", "settings": {"showDynamicCheckout": False}},
                        {"type": "collapsible-tab", "settings": {"heading": "Care and materials"}},
                    ],
                },
            ],
        },
        "collection": {
            "name": "Luxury Fashion Collection",
            "sections": [
                {"type": "collection-banner", "settings": {"height": "large"}},
                {"type": "product-grid", "settings": {"columns": 2, "productsPerPage": 8, "showFilters": False}},
            ],
        },
    },
    "global_sections": {
        "announcement-bar": {
            "settings": {"text": "Complimentary shipping on every order", "backgroundColor": "#1a1a1a"},
        },
        "header": {"settings": {"layout": "logo-center", "transparentOnHome": True}},
        "footer": {"settings": {"columns": 3, "showSocial": True}},
    },
}

TECH_ELECTRONICS = {
    "id": "tech-electronics",
    "name": "Tech & Electronics",
    "description": "Dense, spec-forward layout for technology and gadget stores",
    "category": "electronics",
    "compatible_themes": ["base"],
    "settings": {
        "colors": {
            "primary": "#2563EB",
            "secondary": "#64748B",
            "accent": "#F59E0B",
            "background": "#FFFFFF",
            "text": "#1E293B",
        },
        "fonts": {"heading": "Inter", "body": "Inter"},
        "spacing": {"containerWidth": "1280px", "sectionPadding": "60px"},
    },
    "templates": {
        "homepage": {
            "name": "Tech & Electronics Homepage",
            "sections": [
                {
                    "type": "hero-banner",
                    "settings": {
                        "title": "Latest tech innovations",
                        "subtitle": "Discover cutting-edge technology and smart devices",
                        "height": "large",
                        "textAlign": "left",
                    },
                    "blocks": [
                        {"type": "button", "settings": {"text": "Shop now", "url": "/collections/all", "style": "primary"}},
                        {"type": "button", "settings": {"text": "Deals", "url": "/collections/deals", "style": "secondary"}},
                    ],
                },
                {
                    "type": "feature-grid",
                    "settings": {"columns": 4},
                    "blocks": [
                        {"type": "feature", "settings": {"icon": "truck", "title": "Free shipping"}},
                        {"type": "feature", "settings": {"icon": "shield", "title": "2 year warranty"}},
                        {"type": "feature", "settings": {"icon": "refresh", "title": "30 day returns"}},
                        {"type": "feature", "settings": {"icon": "headset", "title": "Expert support"}},
                    ],
                },
                {"type": "featured-products", "settings": {"title": "Best sellers", "productCount": 8, "columns": 4}},
                {"type": "brand-logos", "settings": {"title": "Top brands", "grayscale": True}},
            ],
        },
        "product": {
            "name": "Tech & Electronics Product",
            "sections": [
                {
                    "type": "product-detail",
                    "settings": {"galleryLayout": "thumbnails-bottom", "showSku": True},
                    "blocks": [
                        {"type": "title", "settings": {}},
                        {"type": "price", "settings": {"showCompareAt": True}},
                        {"type": "buy-buttons", "settings": {}},
                        {
                            "type": "container",
                            "settings": {"direction": "row"},
                            "blocks": [
                                {"type": "badge", "settings": {"text": "In stock"}},
                                {"type": "badge", "settings": {"text": "Ships in 24h"}},
                            ],
                        },
                    ],
                },
                {"type": "specifications", "settings": {"layout": "table"}},
                {"type": "related-products", "settings": {"title": "Frequently bought together", "productCount": 4}},
            ],
        },
        "collection": {
            "name": "Tech & Electronics Collection",
            "sections": [
                {"type": "product-grid", "settings": {"columns": 4, "productsPerPage": 24, "showFilters": True, "showCompare": True}},
            ],
        },
    },
    "global_sections": {
        "header": {"settings": {"layout": "logo-left", "showSearch": True, "showAccount": True}},
        "footer": {"settings": {"columns": 5, "showPaymentIcons": True}},
    },
}

FASHION = {
    "id": "fashion",
    "name": "Fashion Starter",
    "description": "General starting point for apparel stores, works with any theme",
    "category": "fashion",
    "compatible_themes": [],
    "settings": {
        "colors": {
            "primary": "#111111",
            "secondary": "#777777",
            "accent": "#e4572e",
            "background": "#ffffff",
            "text": "#222222",
        },
        "fonts": {"heading": "DM Serif Display", "body": "DM Sans"},
    },
    "templates": {
        "homepage": {
            "name": "Fashion Homepage",
            "sections": [
                {
                    "type": "hero",
                    "settings": {"height": "medium", "contentAlignment": "left"},
                    "blocks": [
                        {"type": "text", "settings": {"text": "Wear it your way"}},
                        {"type": "button", "settings": {"text": "Shop new arrivals", "url": "/collections/new"}},
                    ],
                },
                {"type": "featured-products", "settings": {"title": "New arrivals", "productCount": 8, "columns": 4}},
                {"type": "newsletter", "settings": {"title": "Get 10% off your first order"}},
            ],
        },
        "product": {
            "name": "Fashion Product",
            "sections": [
                {
                    "type": "product-detail",
                    "settings": {"galleryLayout": "grid"},
                    "blocks": [
                        {"type": "title", "settings": {}},
                        {"type": "price", "settings": {}},
                        {"type": "variant-picker", "settings": {"style": "swatches"}},
                        {"type": "buy-buttons", "settings": {}},
                    ],
                },
            ],
        },
    },
}

PRESETS = [MODERN_FASHION, LUXURY_FASHION, TECH_ELECTRONICS, FASHION]
