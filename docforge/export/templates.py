"""
Markup templates of the exported static site.

The page template is a string.Template; every literal dollar sign in it is
doubled. The embedded script works purely on the embedded section data,
so the exported page needs nothing beyond static file serving.
"""

from string import Template


SECTION_ICONS = {
    "home": '<path stroke-linecap="round" stroke-linejoin="round" stroke-width="2" d="M3 12l2-2m0 0l7-7 7 7M5 10v10a1 1 0 001 1h3m10-11l2 2m-2-2v10a1 1 0 01-1 1h-3m-6 0a1 1 0 001-1v-4a1 1 0 011-1h2a1 1 0 011 1v4a1 1 0 001 1m-6 0h6"></path>',
    "info": '<path stroke-linecap="round" stroke-linejoin="round" stroke-width="2" d="M13 16h-1v-4h-1m1-4h.01M21 12a9 9 0 11-18 0 9 9 0 0118 0z"></path>',
    "users": '<path stroke-linecap="round" stroke-linejoin="round" stroke-width="2" d="M12 4.354a4 4 0 110 5.292M15 21H3v-1a6 6 0 0112 0v1zm0 0h6v-1a6 6 0 00-9-5.197M13 7a4 4 0 11-8 0 4 4 0 018 0z"></path>',
    "settings": '<path stroke-linecap="round" stroke-linejoin="round" stroke-width="2" d="M10.325 4.317c.426-1.756 2.924-1.756 3.35 0a1.724 1.724 0 002.573 1.066c1.543-.94 3.31.826 2.37 2.37a1.724 1.724 0 001.065 2.572c1.756.426 1.756 2.924 0 3.35a1.724 1.724 0 00-1.066 2.573c.94 1.543-.826 3.31-2.37 2.37a1.724 1.724 0 00-2.572 1.065c-.426 1.756-2.924 1.756-3.35 0a1.724 1.724 0 00-2.573-1.066c-1.543.94-3.31-.826-2.37-2.37a1.724 1.724 0 00-1.065-2.572c-1.756-.426-1.756-2.924 0-3.35a1.724 1.724 0 001.066-2.573c-.94-1.543.826-3.31 2.37-2.37.996.608 2.296.07 2.572-1.065z"></path><path stroke-linecap="round" stroke-linejoin="round" stroke-width="2" d="M15 12a3 3 0 11-6 0 3 3 0 016 0z"></path>',
    "book": '<path stroke-linecap="round" stroke-linejoin="round" stroke-width="2" d="M12 6.253v13m0-13C10.832 5.477 9.246 5 7.5 5S4.168 5.477 3 6.253v13C4.168 18.477 5.754 18 7.5 18s3.332.477 4.5 1.253m0-13C13.168 5.477 14.754 5 16.5 5c1.747 0 3.332.477 4.5 1.253v13C19.832 18.477 18.247 18 16.5 18c-1.746 0-3.332.477-4.5 1.253"></path>',
    "lightbulb": '<path stroke-linecap="round" stroke-linejoin="round" stroke-width="2" d="M9.663 17h4.673M12 3v1m6.364 1.636l-.707.707M21 12h-1M4 12H3m3.343-5.657l-.707-.707m2.828 9.9a5 5 0 117.072 0l-.548.547A3.374 3.374 0 0014 18.469V19a2 2 0 11-4 0v-.531c0-.895-.356-1.754-.988-2.386l-.548-.547z"></path>',
    "target": '<path stroke-linecap="round" stroke-linejoin="round" stroke-width="2" d="M12 22s8-4 8-10V5l-8-3-8 3v7c0 6 8 10 8 10z"></path>',
    "file": '<path stroke-linecap="round" stroke-linejoin="round" stroke-width="2" d="M9 12h6m-6 4h6m2 5H7a2 2 0 01-2-2V5a2 2 0 012-2h5.586a1 1 0 01.707.293l5.414 5.414a1 1 0 01.293.707V19a2 2 0 01-2 2z"></path>',
}

# First matching keyword group wins
ICON_KEYWORDS = [
    ("home", ("intro", "home", "welcome")),
    ("info", ("about", "info")),
    ("users", ("team", "user", "people")),
    ("settings", ("setting", "config")),
    ("book", ("document", "guide", "manual")),
    ("lightbulb", ("idea", "innovation")),
    ("target", ("goal", "objective", "target")),
]

ICON_SVG = Template(
    '<svg class="h-4 w-4 flex-shrink-0 mt-0.5" data-icon="$name" fill="none" '
    'stroke="currentColor" viewBox="0 0 24 24">$paths</svg>'
)

CHEVRON_PATH = '<path stroke-linecap="round" stroke-linejoin="round" stroke-width="2" d="M9 5l7 7-7 7"></path>'

SIDEBAR_ENTRY = Template("""
<div>
  <div class="flex items-start w-full" style="padding-left: ${indent}px;">
    <button onclick="showSection('$section_id'); closeMobileMenu(); return false;" data-section="$section_id"
      class="sidebar-btn$active_class flex-1 flex items-start gap-2 rounded-md px-3 py-2 text-sm transition-colors hover:bg-gray-100 $state_classes" style="text-align: left;">
      $icon<span class="flex-1 text-left break-words">$title</span>
    </button>$toggle
  </div>$children
</div>""")

SIDEBAR_TOGGLE = Template("""
    <button onclick="toggleSubSection('$section_id'); event.stopPropagation(); return false;" class="p-2 hover:bg-gray-200 rounded flex-shrink-0 transition-colors" style="margin-top: 0.125rem;">
      <svg id="chevron-$section_id" class="h-4 w-4 transition-transform" style="transform: rotate(${rotation}deg);" fill="none" stroke="currentColor" viewBox="0 0 24 24">$chevron</svg>
    </button>""")

SIDEBAR_CHILDREN = Template("""
  <div id="subsections-$section_id" class="$hidden_class">$entries
  </div>""")

NAV_BUTTON_PREV = Template("""
    <button onclick="showSection('$section_id'); return false;" data-nav="prev" data-target="$section_id" class="nav-btn flex gap-2 flex-1 py-3 md:py-4 px-4 border rounded-lg hover:bg-gray-50 text-left w-full sm:w-auto">
      <svg class="h-5 w-5 rotate-180 flex-shrink-0" fill="none" stroke="currentColor" viewBox="0 0 24 24">$chevron</svg>
      <div class="text-left flex-1 min-w-0"><div class="text-xs text-gray-500">Previous</div><div class="font-medium truncate text-sm md:text-base">$title</div></div>
    </button>""")

NAV_BUTTON_NEXT = Template("""
    <button onclick="showSection('$section_id'); return false;" data-nav="next" data-target="$section_id" class="nav-btn flex gap-2 flex-1 py-3 md:py-4 px-4 border rounded-lg hover:bg-gray-50 text-right w-full sm:w-auto">
      <div class="text-right flex-1 min-w-0"><div class="text-xs text-gray-500">Next</div><div class="font-medium truncate text-sm md:text-base">$title</div></div>
      <svg class="h-5 w-5 flex-shrink-0" fill="none" stroke="currentColor" viewBox="0 0 24 24">$chevron</svg>
    </button>""")

NAV_PLACEHOLDER = '\n    <div class="hidden sm:block flex-1"></div>'

SECTION_PANEL = Template("""
<div id="section-$section_id" class="section-content$active_class" style="display: $display;">
  <h1 class="mb-4 md:mb-6 text-2xl sm:text-3xl md:text-4xl font-bold">$title</h1>
  <div class="prose prose-sm sm:prose-base md:prose-lg max-w-none">
$content
  </div>
  <div class="mt-8 md:mt-12 pt-6 md:pt-8 border-t flex flex-col sm:flex-row gap-3 sm:gap-4">$prev$next
  </div>
  <div class="mt-6 md:mt-8 pt-4 text-xs sm:text-sm text-gray-500 text-center border-t">
    Last updated: $updated
  </div>
</div>""")

PAGE_SCRIPT = """
    function escapeHtml(text) {
      return String(text)
        .replace(/&/g, '&amp;')
        .replace(/</g, '&lt;')
        .replace(/>/g, '&gt;')
        .replace(/"/g, '&quot;')
        .replace(/'/g, '&#039;');
    }

    function initializeExpandedSections() {
      expandedSections.forEach(function (sectionId) {
        const subsectionsEl = document.getElementById('subsections-' + sectionId);
        const chevronEl = document.getElementById('chevron-' + sectionId);
        if (subsectionsEl) {
          subsectionsEl.classList.remove('hidden');
        }
        if (chevronEl) {
          chevronEl.style.transform = 'rotate(90deg)';
        }
      });
    }

    function findParentIds(sectionId) {
      function search(sectionList, targetId, currentPath) {
        if (!sectionList) return null;
        for (const section of sectionList) {
          if (section.id === targetId) {
            return currentPath;
          }
          if (section.children) {
            const found = search(section.children, targetId, currentPath.concat([section.id]));
            if (found) return found;
          }
        }
        return null;
      }
      return search(sectionTree, sectionId, []) || [];
    }

    function toggleMobileMenu() {
      const mobileMenu = document.getElementById('mobileMenu');
      const mobileMenuSidebar = document.getElementById('mobileMenuSidebar');
      if (!mobileMenu || !mobileMenuSidebar) return;
      if (mobileMenu.classList.contains('open')) {
        closeMobileMenu();
        return;
      }
      mobileMenu.style.display = 'block';
      mobileMenuSidebar.style.display = 'block';
      mobileMenu.offsetHeight;
      setTimeout(function () {
        mobileMenu.classList.add('open');
        mobileMenuSidebar.classList.add('open');
      }, 10);
    }

    function closeMobileMenu() {
      const mobileMenu = document.getElementById('mobileMenu');
      const mobileMenuSidebar = document.getElementById('mobileMenuSidebar');
      if (!mobileMenu || !mobileMenuSidebar) return;
      mobileMenu.classList.remove('open');
      mobileMenuSidebar.classList.remove('open');
      setTimeout(function () {
        if (!mobileMenu.classList.contains('open')) {
          mobileMenu.style.display = 'none';
          mobileMenuSidebar.style.display = 'none';
        }
      }, 300);
    }

    function showSection(sectionId) {
      findParentIds(sectionId).forEach(function (parentId) {
        const subsectionsEl = document.getElementById('subsections-' + parentId);
        const chevronEl = document.getElementById('chevron-' + parentId);
        if (subsectionsEl && chevronEl) {
          subsectionsEl.classList.remove('hidden');
          chevronEl.style.transform = 'rotate(90deg)';
          expandedSections.add(parentId);
        }
      });

      document.querySelectorAll('.section-content').forEach(function (el) {
        el.style.display = 'none';
        el.classList.remove('active');
      });

      const sectionEl = document.getElementById('section-' + sectionId);
      if (sectionEl) {
        sectionEl.style.display = 'block';
        sectionEl.classList.add('active');
      }

      document.querySelectorAll('.sidebar-btn').forEach(function (el) {
        el.classList.remove('active', 'bg-gray-100', 'font-semibold', 'text-blue-800');
        el.classList.add('text-gray-600');
      });
      document.querySelectorAll('[data-section="' + sectionId + '"]').forEach(function (btn) {
        btn.classList.add('active', 'bg-gray-100', 'font-semibold', 'text-blue-800');
        btn.classList.remove('text-gray-600');
      });

      currentSection = sectionId;

      const mobileMenuBtn = document.getElementById('mobileMenuBtn');
      if (mobileMenuBtn && window.getComputedStyle(mobileMenuBtn).display !== 'none') {
        closeMobileMenu();
      }

      const mainContent = document.getElementById('mainContent');
      if (mainContent) {
        mainContent.scrollTop = 0;
      }
    }

    function toggleSubSection(sectionId) {
      const subsectionsEl = document.getElementById('subsections-' + sectionId);
      const chevronEl = document.getElementById('chevron-' + sectionId);
      if (subsectionsEl && chevronEl) {
        if (subsectionsEl.classList.contains('hidden')) {
          subsectionsEl.classList.remove('hidden');
          chevronEl.style.transform = 'rotate(90deg)';
          expandedSections.add(sectionId);
        } else {
          subsectionsEl.classList.add('hidden');
          chevronEl.style.transform = 'rotate(0deg)';
          expandedSections.delete(sectionId);
        }
      }
      return false;
    }

    function clearSearch() {
      document.getElementById('searchInput').value = '';
      document.getElementById('searchResults').classList.add('hidden');
      document.getElementById('clearBtn').classList.add('hidden');
    }

    function searchSections(query) {
      const results = [];
      sections.forEach(function (section) {
        if (section.title.toLowerCase().includes(query)) {
          results.push({ id: section.id, title: section.title, match: section.title });
        }
        section.content.forEach(function (block) {
          const text = block.content || '';
          const idx = text.toLowerCase().indexOf(query);
          if (idx === -1) return;
          const start = Math.max(0, idx - searchContext);
          const end = Math.min(text.length, idx + query.length + searchContext);
          const match = (start > 0 ? '...' : '') + text.substring(start, end) + (end < text.length ? '...' : '');
          results.push({ id: section.id, title: section.title, match: match });
        });
      });
      return results;
    }

    document.getElementById('searchInput').addEventListener('input', function (e) {
      const query = e.target.value.toLowerCase().trim();
      const resultsDiv = document.getElementById('searchResults');
      const clearBtn = document.getElementById('clearBtn');

      if (!query) {
        resultsDiv.classList.add('hidden');
        clearBtn.classList.add('hidden');
        return;
      }

      clearBtn.classList.remove('hidden');
      const results = searchSections(query);

      if (results.length > 0) {
        resultsDiv.innerHTML = results.map(function (r) {
          return '<button data-result="' + escapeHtml(r.id) + '" class="search-result w-full text-left p-3 rounded hover:bg-gray-100">' +
            '<div class="font-medium text-sm text-blue-700 mb-1">' + escapeHtml(r.title) + '</div>' +
            '<div class="text-xs text-gray-500 line-clamp-2">' + escapeHtml(r.match) + '</div>' +
            '</button>';
        }).join('');
      } else {
        resultsDiv.innerHTML = '<div class="p-3 text-sm text-gray-500">No results found</div>';
      }
      resultsDiv.classList.remove('hidden');
    });

    document.getElementById('searchResults').addEventListener('click', function (e) {
      const result = e.target.closest('[data-result]');
      if (!result) return;
      showSection(result.getAttribute('data-result'));
      clearSearch();
      closeMobileMenu();
    });

    document.addEventListener('click', function (e) {
      const link = e.target.closest('[data-section-link]');
      if (!link) return;
      e.preventDefault();
      showSection(link.getAttribute('data-section-link'));
    });

    const mobileMenuOverlay = document.getElementById('mobileMenu');
    if (mobileMenuOverlay) {
      mobileMenuOverlay.addEventListener('click', function (e) {
        if (e.target === this) {
          closeMobileMenu();
        }
      });
      new MutationObserver(function () {
        document.body.style.overflow = mobileMenuOverlay.classList.contains('open') ? 'hidden' : '';
      }).observe(mobileMenuOverlay, { attributes: true, attributeFilter: ['class'] });
    }

    initializeExpandedSections();
    if (currentSection) {
      showSection(currentSection);
    }
"""

PAGE = Template("""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>$title</title>
  <script src="$stylesheet_cdn"></script>
  <style>
    * { margin: 0; padding: 0; box-sizing: border-box; }
    html { scroll-behavior: smooth; }
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif; }
    .sidebar-btn { position: relative; overflow: hidden; }
    .sidebar-btn:hover { background: #f3f4f6 !important; color: #374151 !important; }
    .sidebar-btn.active { background: #f3f4f6 !important; font-weight: 600 !important; color: #1e3a8a !important; }
    .section-content { display: none; }
    .section-content.active { display: block; }
    #mobileMenu { display: none; opacity: 0; transition: opacity 0.3s ease; }
    #mobileMenu.open { display: block; opacity: 1; }
    #mobileMenuSidebar { transition: transform 0.3s ease; }
    #mobileMenuSidebar.open { display: block !important; transform: translateX(0) !important; }
    @media (max-width: 768px) {
      #sidebar { display: none !important; }
    }
    @media (min-width: 769px) {
      #mobileMenu { display: none !important; }
      #mobileMenuSidebar { display: none !important; }
    }
  </style>
</head>
<body class="bg-white text-gray-800">
  <header class="sticky top-0 z-50 w-full border-b bg-white/95" style="backdrop-filter: blur(8px);">
    <div class="container max-w-7xl mx-auto flex h-16 items-center justify-between px-4">
      <div class="flex items-center gap-3">
        <button id="mobileMenuBtn" onclick="toggleMobileMenu(); event.stopPropagation();" class="md:hidden p-2 hover:bg-gray-100 rounded-md">
          <svg class="h-5 w-5" fill="none" stroke="currentColor" viewBox="0 0 24 24"><path stroke-linecap="round" stroke-linejoin="round" stroke-width="2" d="M4 6h16M4 12h16M4 18h16"></path></svg>
        </button>
        <span class="font-semibold truncate">$title</span>
      </div>
      <div class="relative">
        <svg class="absolute left-2.5 top-2.5 h-4 w-4 text-gray-400" fill="none" stroke="currentColor" viewBox="0 0 24 24"><path stroke-linecap="round" stroke-linejoin="round" stroke-width="2" d="M21 21l-6-6m2-5a7 7 0 11-14 0 7 7 0 0114 0z"></path></svg>
        <input type="search" id="searchInput" placeholder="Search..." class="w-[140px] sm:w-[180px] md:w-[200px] lg:w-[300px] pl-8 pr-8 py-2 border rounded-md text-sm" />
        <button onclick="clearSearch()" id="clearBtn" class="hidden absolute right-1 top-1 h-6 w-6 hover:bg-gray-100 rounded-md">
          <svg class="h-3 w-3" fill="none" stroke="currentColor" viewBox="0 0 24 24"><path stroke-linecap="round" stroke-linejoin="round" stroke-width="2" d="M6 18L18 6M6 6l12 12"></path></svg>
        </button>
      </div>
    </div>
    <div id="searchResults" class="hidden absolute left-2 right-2 md:right-4 md:left-auto md:w-[400px] top-16 z-50 bg-white border rounded-lg shadow-lg max-h-[400px] overflow-y-auto p-2"></div>
  </header>

  <div id="mobileMenu" class="fixed inset-0 z-40 bg-black bg-opacity-50" style="display: none;"></div>
  <div id="mobileMenuSidebar" class="fixed left-0 top-16 bottom-0 z-50 w-80 bg-gray-50 border-r shadow-lg overflow-hidden" style="display: none; transform: translateX(-100%);" onclick="event.stopPropagation();">
    <div class="p-4 border-b bg-white sticky top-0 z-10">
      <div class="flex items-center justify-between">
        <h2 class="text-lg font-bold">$title</h2>
        <button onclick="closeMobileMenu(); event.stopPropagation();" class="p-2 hover:bg-gray-100 rounded-md">
          <svg class="h-5 w-5" fill="none" stroke="currentColor" viewBox="0 0 24 24"><path stroke-linecap="round" stroke-linejoin="round" stroke-width="2" d="M6 18L18 6M6 6l12 12"></path></svg>
        </button>
      </div>
    </div>
    <div class="overflow-y-auto h-[calc(100vh-5rem)] p-4">
      <nav class="space-y-1" id="mobileSidebarNav">$sidebar
      </nav>
    </div>
  </div>

  <div class="flex overflow-hidden">
    <aside id="sidebar" class="hidden md:block w-64 border-r bg-gray-50 h-[calc(100vh-4rem)] overflow-y-auto">
      <div class="p-4">
        <h2 class="mb-4 text-lg font-bold">$title</h2>
        <nav class="space-y-1" id="sidebarNav">$sidebar
        </nav>
      </div>
    </aside>

    <main class="flex-1 overflow-y-auto h-[calc(100vh-4rem)]">
      <div class="container max-w-7xl mx-auto px-4 sm:px-6 md:px-8 py-6 md:py-12" id="mainContent">$panels
      </div>
    </main>
  </div>

  <script>
    let currentSection = $initial_section;
    const sections = $search_index;
    const sectionTree = $section_tree;
    const expandedSections = new Set($expanded_sections);
    const searchContext = $search_context;
$script
  </script>
</body>
</html>
""")
