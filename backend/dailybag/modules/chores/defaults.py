DIFFICULTY_POINTS = {"easy": 5, "medium": 10, "hard": 15}

# (title, description, difficulty, category, priority)
DEFAULT_CHORES = [
    ("Make Your Bed", "Straighten sheets, arrange pillows, and tidy your bedroom", "easy", "daily", "medium"),
    ("Take Out Trash", "Collect and take out all household trash", "easy", "daily", "high"),
    ("Wipe Kitchen Counters", "Clean and sanitize kitchen countertops", "easy", "daily", "high"),
    ("Do the Dishes", "Wash, dry, and put away dishes", "easy", "daily", "medium"),
    ("Clean Bathroom Sink", "Wipe down bathroom sink and mirror", "easy", "daily", "medium"),
    ("Feed Pets", "Feed and give water to pets", "easy", "daily", "high"),
    ("Tidy Living Room", "Put away items and organize common areas", "easy", "daily", "low"),
    ("Clean Kitchen", "Wash dishes, wipe counters, and clean surfaces", "medium", "daily", "high"),
    ("Sweep Floors", "Sweep high-traffic areas like kitchen and entryway", "medium", "daily", "medium"),
    ("Water Plants", "Water indoor plants as needed", "medium", "daily", "low"),
    ("Change Bed Sheets", "Remove old sheets and put on fresh bedding", "easy", "weekly", "medium"),
    ("Take Out All Trash", "Collect trash from all rooms and take to bins", "easy", "weekly", "high"),
    ("Clean Mirrors and Windows", "Wipe down mirrors and clean windows", "easy", "weekly", "low"),
    ("Sort Mail and Papers", "Organize mail, file important papers, and recycle junk", "easy", "weekly", "medium"),
    ("Do Laundry", "Wash, dry, fold, and put away clothes", "medium", "weekly", "high"),
    ("Vacuum Floors", "Vacuum carpets and rugs throughout the house", "medium", "weekly", "medium"),
    ("Clean Bathroom", "Scrub toilet, sink, shower, and wipe down surfaces", "medium", "weekly", "medium"),
    ("Mow Lawn / Yard Work", "Mow grass, trim edges, and maintain yard", "medium", "weekly", "low"),
    ("Grocery Shopping", "Plan meals, make shopping list, and buy groceries", "medium", "weekly", "high"),
    ("Clean Out Fridge", "Throw away expired food and wipe down shelves", "medium", "weekly", "medium"),
    ("Deep Clean Kitchen", "Clean appliances, scrub surfaces, and organize pantry", "hard", "weekly", "medium"),
    ("Organize and Declutter", "Go through rooms and organize or donate unused items", "hard", "weekly", "low"),
    ("Change Light Bulbs", "Replace any burnt out light bulbs", "easy", "monthly", "low"),
    ("Wash Blankets and Pillows", "Wash throw blankets, decorative pillows, and comforters", "easy", "monthly", "low"),
    ("Clean Air Vents", "Dust and clean air vents and filters", "easy", "monthly", "low"),
    ("Deep Clean Oven", "Clean inside of oven and stovetop thoroughly", "medium", "monthly", "medium"),
    ("Wash Windows", "Clean all windows inside and out", "medium", "monthly", "low"),
    ("Deep Clean Carpets", "Vacuum thoroughly and spot clean carpets", "medium", "monthly", "low"),
    ("Organize Pantry", "Sort food items, check expiration dates, and organize shelves", "medium", "monthly", "medium"),
    ("Organize Closet", "Sort clothes, donate unused items, and organize wardrobe", "hard", "monthly", "low"),
    ("Deep Clean Entire House", "Thoroughly clean all rooms, including baseboards and corners", "hard", "monthly", "low"),
    ("Organize Garage / Storage", "Sort tools, organize storage, and clean garage or storage area", "hard", "monthly", "low"),
    ("Change Seasonal Decorations", "Update decorations to match the current season", "easy", "seasonal", "low"),
    ("Switch Seasonal Clothes", "Put away off-season clothes and bring out current season items", "easy", "seasonal", "low"),
    ("Seasonal Yard Work", "Plant seasonal flowers, trim bushes, and maintain landscaping", "medium", "seasonal", "medium"),
    ("Service HVAC System", "Change air filters and have HVAC system checked", "medium", "seasonal", "high"),
    ("Deep Seasonal Cleaning", "Complete deep cleaning of all areas, including neglected spaces", "hard", "seasonal", "low"),
]
